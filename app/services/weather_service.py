import os
import logging
from typing import List, Optional

import httpx

from app.models.assistant import WeatherData

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_LOCATION = "Port Louis, Mauritius"


def generate_weather_recommendations(weather_data: dict) -> List[str]:
    """
    Canned activity tips for the current conditions.
    - above 28°C: beach and water sports, indoor attractions at midday
    - below 20°C: hiking, botanical gardens and markets
    - rain: indoor suggestions; clear or sunny: snorkeling and photography
    - wind above 20 km/h: kite surfing
    """
    recommendations = []
    temp = weather_data["main"]["temp"]
    condition = weather_data["weather"][0]["main"].lower()
    wind_speed = weather_data["wind"]["speed"] * 3.6  # m/s to km/h

    if temp > 28:
        recommendations.append("Perfect for beach activities and water sports")
        recommendations.append("Consider indoor attractions during midday heat")
    elif temp < 20:
        recommendations.append("Great weather for hiking and outdoor exploration")
        recommendations.append("Ideal for visiting botanical gardens and markets")

    if "rain" in condition:
        recommendations.append("Visit museums, shopping centers, or covered markets")
        recommendations.append("Perfect time for spa treatments or cultural experiences")
    elif "clear" in condition or "sun" in condition:
        recommendations.append("Excellent for snorkeling, diving, or beach activities")
        recommendations.append("Great for photography and sightseeing")

    if wind_speed > 20:
        recommendations.append("Excellent conditions for kite surfing or windsurfing")

    return recommendations


async def get_weather_data(location: Optional[str] = None) -> Optional[WeatherData]:
    api_key = os.getenv("OPENWEATHER_API_KEY")
    if not api_key:
        logger.warning("Weather API key not configured, skipping weather data")
        return None

    location = location or DEFAULT_LOCATION
    logger.info(f"Fetching weather for: {location}")
    params = {"q": location, "appid": api_key, "units": "metric"}
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(OPENWEATHER_URL, params=params, timeout=10)
            response.raise_for_status()
            data = response.json()
        weather = WeatherData(
            temperature=round(data["main"]["temp"]),
            condition=data["weather"][0]["main"],
            humidity=data["main"]["humidity"],
            windSpeed=round(data["wind"]["speed"] * 3.6),
            description=data["weather"][0]["description"],
            recommendations=generate_weather_recommendations(data),
        )
        logger.info("Weather data fetched successfully")
        return weather
    except Exception as e:
        logger.error(f"Weather fetch error: {e}")
        return None
