from decimal import ROUND_HALF_UP, Decimal

from models import WeatherReport

# Tier 3 says everything tier 2 does, which says everything tier 1 does.
WEATHER_TEMPLATES = {
    3: (
        "Currently in {city} it's {temp} degrees {unit} with {description}. "
        "Today you can expect a high of {high} and a low of {low}."
    ),
    2: "It is {temp} {unit} with {description}. High is {high} and low is {low}.",
    1: "It's {temp} and you can expect {description}.",
}

UNIT_NAMES = {
    "imperial": "fahrenheit",
    "metric": "celsius",
}

HELLO_TEXT = "Hello World!"
HELP_TEXT = "Ask me for the weather, and I'll tell you what it's like outside. How can I help?"
GOODBYE_TEXT = "Goodbye!"
FALLBACK_TEXT = "Sorry, I don't know about that. Please try again."
WEATHER_UNAVAILABLE_TEXT = (
    "Sorry, I couldn't get the weather right now. Please try again later."
)
APOLOGY_TEXT = "Sorry, I had trouble doing what you asked. Please try again."
REFLECTOR_TEMPLATE = "You just triggered {intent_name}"


def _whole_degrees(value: float) -> int:
    # Halves round away from zero: 62.5 is spoken as 63.
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def render_weather(tier: int, report: WeatherReport, city: str | None = None) -> str:
    """Render the spoken weather text for one verbosity tier."""
    try:
        template = WEATHER_TEMPLATES[tier]
    except KeyError:
        raise ValueError(f"unknown verbosity tier: {tier!r}") from None

    return template.format(
        city=city or report.location,
        temp=_whole_degrees(report.temperature),
        high=_whole_degrees(report.temp_max),
        low=_whole_degrees(report.temp_min),
        description=report.description,
        unit=UNIT_NAMES.get(report.units, "kelvin"),
    )
