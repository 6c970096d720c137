import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import io
import logging
import qrcode
from datetime import datetime
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader

from stability_factors.models import Climate, Features
from stability_factors.slope_stability import SlopeStabilityEngine

logger = logging.getLogger(__name__)

COLOR_DEEP_NAVY = colors.HexColor("#0f172a")
LEVEL_COLORS = {
    "Safe": colors.HexColor("#10b981"),
    "Low": colors.HexColor("#22c55e"),
    "Medium": colors.HexColor("#f59e0b"),
    "High": colors.HexColor("#ef4444"),
    "Extreme": colors.HexColor("#7f1d1d"),
}

# (detail key, label, unit)
DETAIL_ROWS = [
    ("FoS", "Factor of Safety", ""),
    ("probability_pct", "Failure probability", "%"),
    ("cohesion_kpa", "Cohesion (incl. roots)", "kPa"),
    ("root_cohesion_kpa", "Root cohesion", "kPa"),
    ("friction_angle_deg", "Friction angle", "°"),
    ("shear_strength_kpa", "Shear strength", "kPa"),
    ("shear_stress_kpa", "Shear stress", "kPa"),
    ("pore_pressure_pct", "Pore pressure ratio", "%"),
    ("saturation_pct", "Antecedent saturation", "%"),
    ("infiltration_rate_mm_hr", "Infiltration capacity", "mm/hr"),
    ("depth_m", "Failure plane depth", "m"),
]

SENSITIVITY_MAX_RAIN_MM = 50.0


def _draw_wrapped_text(c, text, x, y, max_width, line_height, font="Helvetica", size=8):
    """Helper to manually wrap text within a specific width on the PDF."""
    if not text:
        return y - line_height
    c.setFont(font, size)
    words = str(text).split(' ')
    line = ""
    for word in words:
        if c.stringWidth(line + word + " ", font, size) < max_width:
            line += word + " "
        else:
            c.drawString(x, y, line)
            line = word + " "
            y -= line_height
    c.drawString(x, y, line)
    return y - line_height


def _draw_section_header(c, x, y, width, text):
    """Draws a navy blue sub-header to separate the PDF into sections"""
    c.setFillColor(COLOR_DEEP_NAVY)
    c.roundRect(x, y, width - 80, 18, 4, fill=1, stroke=0)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 9)
    c.drawString(x + 10, y + 5, text.upper())
    return y - 10


def _draw_share_qr(c, share_url, width, height):
    qr = qrcode.QRCode(version=1, box_size=10, border=2)
    qr.add_data(share_url)
    qr.make(fit=True)
    qr_img = qr.make_image(fill_color="black", back_color="white")

    qr_buffer = io.BytesIO()
    qr_img.save(qr_buffer, format='PNG')
    qr_buffer.seek(0)

    c.setFillColor(colors.white)
    c.roundRect(width - 95, height - 90, 80, 80, 4, fill=1, stroke=0)
    c.drawImage(ImageReader(qr_buffer), width - 90, height - 82, width=70, height=70)

    btn_x, btn_y, btn_w, btn_h = width - 90, height - 88, 70, 10
    c.setFillColor(LEVEL_COLORS["Safe"])
    c.roundRect(btn_x, btn_y, btn_w, btn_h, 2, fill=1, stroke=0)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 6)
    c.drawCentredString(width - 55, btn_y + 3, "OPEN LINK")
    c.linkURL(share_url, (btn_x, btn_y, btn_x + btn_w, btn_y + btn_h), relative=0)


def _features_from_input(payload):
    """Rebuilds the Features record echoed under 'input' in a prediction response."""
    if not payload:
        return None
    data = dict(payload)
    climate = data.pop("climate", None)
    data["climate"] = Climate(**climate) if climate else None
    data["simulated"] = False
    return Features(**data)


def rainfall_sensitivity(features, max_rain=SENSITIVITY_MAX_RAIN_MM, steps=26):
    """Failure probability (%) across simulated rainfall values for the same site."""
    rain_values = np.linspace(0.0, max_rain, steps)
    probabilities = np.array([
        SlopeStabilityEngine.evaluate(features, manual_rain=float(r)).details["probability_pct"]
        for r in rain_values
    ])
    return rain_values, probabilities


def _draw_sensitivity_chart(c, features, x, y):
    rain_values, probabilities = rainfall_sensitivity(features)

    fig = plt.figure(figsize=(4.5, 2.2), dpi=150)
    ax = fig.add_subplot(111)
    ax.plot(rain_values, probabilities, color='#06b6d4', linewidth=1.5)
    ax.fill_between(rain_values, probabilities, color='#06b6d4', alpha=0.2)
    current = features.rain_current or 0.0
    if 0 <= current <= rain_values[-1]:
        ax.axvline(current, color='#ef4444', linestyle='--', linewidth=1)
    ax.set_xlabel("Simulated rainfall (mm)", fontsize=6)
    ax.set_ylabel("Failure probability (%)", fontsize=6)
    ax.set_ylim(0, 100)
    ax.tick_params(labelsize=5)
    fig.tight_layout()

    chart_io = io.BytesIO()
    fig.savefig(chart_io, format='png', transparent=True)
    plt.close(fig)
    chart_io.seek(0)
    c.drawImage(ImageReader(chart_io), x, y - 150, width=310, height=150, mask='auto')
    return y - 160


def _draw_risk_analysis(c, data, width, height):
    prediction = data.get("prediction") or {}
    details = prediction.get("details") or {}
    level = prediction.get("risk_level", "N/A")
    level_color = LEVEL_COLORS.get(level, colors.grey)

    # 1. HEADER
    c.setFillColor(COLOR_DEEP_NAVY)
    c.rect(0, height - 100, width, 100, fill=1, stroke=0)

    share_url = data.get('shareLink')
    if share_url:
        try:
            _draw_share_qr(c, share_url, width, height)
        except Exception as e:
            logger.warning(f"QR Generation Error: {e}")

    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(width / 2, height - 40, "Landslide Risk Assessment")
    c.setFont("Helvetica-Bold", 12)
    c.drawCentredString(width / 2, height - 60, str(data.get('locationName') or 'Site Analysis').upper())

    loc = data.get('location', {})
    lat = loc.get('lat', 0.0)
    lng = loc.get('lng', 0.0)
    timestamp = datetime.now().strftime('%d %b %Y | %H:%M:%S')
    c.setFont("Helvetica", 8)
    c.drawCentredString(width / 2, height - 80, f"{timestamp}  •  LAT: {lat} | LNG: {lng}")

    # 2. SCORECARD
    y_score = height - 145
    c.setFillColor(level_color)
    c.setFont("Helvetica-Bold", 28)
    c.drawString(45, y_score, str(level).upper())
    c.setFillColor(colors.black)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(45, y_score - 18, f"FoS {details.get('FoS', 'N/A')}  |  Probability {details.get('probability_pct', 'N/A')}%")
    c.setFont("Helvetica", 8)
    climate = data.get("climate") or {}
    c.drawString(45, y_score - 32, f"Environment: {prediction.get('environment', 'N/A')}  |  Soil: {prediction.get('soil_type', 'N/A')}  |  Vegetation: {climate.get('vegetation', 'N/A')}")
    if data.get("isSimulated"):
        c.setFillColor(LEVEL_COLORS["Medium"])
        c.setFont("Helvetica-Bold", 8)
        c.drawString(45, y_score - 44, "SIMULATED RAINFALL SCENARIO – figures are hypothetical")

    # 3. SECTION 01: MOHR-COULOMB DETAILS
    y_tab1 = _draw_section_header(c, 40, y_score - 75, width, "Section 01: Slope Stability Mechanics")
    y_row = y_tab1 - 12
    for key, label, unit in DETAIL_ROWS:
        c.setFillColor(colors.black)
        c.setFont("Helvetica", 8)
        c.drawString(50, y_row, label)
        c.setFont("Helvetica-Bold", 8)
        c.drawRightString(width - 60, y_row, f"{details.get(key, 'N/A')} {unit}".strip())
        y_row -= 12

    # 4. SECTION 02: REASONING
    y_tab2 = _draw_section_header(c, 40, y_row - 15, width, "Section 02: Contributing Factors")
    y_reason = y_tab2 - 12
    c.setFillColor(colors.black)
    for factor in str(prediction.get("reason", "")).split(" | "):
        y_reason = _draw_wrapped_text(c, f"• {factor}", 50, y_reason, width - 110, 10)

    # 5. SECTION 03: RAINFALL SENSITIVITY
    features = _features_from_input(data.get("input"))
    if features is not None:
        y_tab3 = _draw_section_header(c, 40, y_reason - 15, width, "Section 03: Rainfall Sensitivity")
        y_chart = _draw_sensitivity_chart(c, features, 45, y_tab3 - 5)
    else:
        y_chart = y_reason - 15

    c.setFillColor(colors.grey)
    c.setFont("Helvetica-Oblique", 7)
    c.drawString(40, max(30, y_chart - 10), str(data.get("disclaimer") or ""))


def generate_risk_report(data):
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    _draw_risk_analysis(c, data, width, height)
    c.save()
    buffer.seek(0)
    return buffer
