import requests

from stability_factors.models import Climate, Features


TROPICAL = Climate(zone="Tropical", vegetation="dense", permafrost=False)


def make_features(**overrides) -> Features:
    """Western Ghats hillside in the monsoon, with any field overridden."""
    defaults = dict(
        latitude=10.08,
        longitude=77.07,
        slope=25.0,
        elevation=500.0,
        temperature=26.0,
        temp_max=30.0,
        temp_min=24.0,
        rain_current=5.0,
        rain_7day=60.0,
        weather_code=3,
        clay=35.0,
        sand=30.0,
        silt=35.0,
        bulk_density=165.0,
        depth=2.5,
        climate=TROPICAL,
    )
    defaults.update(overrides)
    return Features(**defaults)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload
