# backend/stability_factors/geo_data_service.py
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from integrations import soil_adapter, terrain_adapter, weather_adapter

from .climatic import climate_zone
from .models import Features

logger = logging.getLogger(__name__)


class GeoDataService:
    @staticmethod
    def get_site_features(lat: float, lng: float, depth: Optional[float] = None) -> Tuple[Features, Dict[str, Any]]:
        """
        Recruits weather, topography and soil for one coordinate and
        assembles the engine's Features record.

        Returns:
            (features, context) where context keeps the raw provider bundles
            for the response's evidence section.
        """
        weather = weather_adapter.fetch_weather(lat, lng)
        topo = terrain_adapter.calculate_topography(lat, lng)
        soil = soil_adapter.get_soil_composition(lat, lng, depth)

        climate = climate_zone.classify(
            lat,
            weather["temperature"],
            weather.get("temp_max"),
            weather.get("temp_min"),
            weather["rain_7day"],
        )

        features = Features(
            latitude=lat,
            longitude=lng,
            rain_current=weather["rain_current"],
            rain_7day=weather["rain_7day"],
            slope=topo["slope"],
            elevation=topo["elevation"],
            aspect=topo.get("aspect", 0.0),
            is_water=bool(topo.get("is_water", False)),
            temperature=weather["temperature"],
            temp_max=weather.get("temp_max"),
            temp_min=weather.get("temp_min"),
            humidity=weather.get("humidity"),
            weather_code=weather.get("weather_code", 0),
            clay=soil["clay"],
            sand=soil["sand"],
            silt=soil["silt"],
            bulk_density=soil["bulk_density"],
            organic_carbon=soil.get("organic_carbon"),
            ph=soil.get("ph"),
            depth=depth,
            climate=climate,
        )

        logger.info(
            f"Site features for {lat:.4f},{lng:.4f}: slope={topo['slope']}° "
            f"elev={topo['elevation']}m rain7={weather['rain_7day']}mm zone={climate.zone}"
        )

        context = {
            "weather": weather,
            "topography": topo,
            "soil": soil,
            "timestamp": datetime.now().isoformat(),
        }
        return features, context
