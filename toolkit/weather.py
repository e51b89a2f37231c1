"""
Weather Tools

Current weather and 5-day forecast from OpenWeatherMap.
Returns structured data, not user-facing strings.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from agents.intent_router import Capability
from toolkit.base import Tool, ToolResult


logger = logging.getLogger(__name__)


class WeatherLookupError(Exception):
    """The weather service could not answer."""


class WeatherClient:
    """
    Thin synchronous OpenWeatherMap client (geocode -> weather/forecast).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        geo_url: str = "https://api.openweathermap.org/geo/1.0/direct",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._geo_url = geo_url
        self._timeout = timeout
        self._transport = transport

    def _get(self, url: str, params: Dict[str, Any]) -> Any:
        if not self._api_key:
            raise WeatherLookupError("Weather API key not configured")
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.get(url, params={**params, "appid": self._api_key})
                resp.raise_for_status()
                return resp.json()
        except httpx.TimeoutException as exc:
            raise WeatherLookupError("請求超時，請稍後再試") from exc
        except httpx.HTTPStatusError as exc:
            raise WeatherLookupError(
                f"API 錯誤：{exc.response.status_code} - {exc.response.reason_phrase}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise WeatherLookupError(f"天氣查詢失敗：{exc}") from exc

    def geocode(self, city: str) -> Dict[str, Any]:
        places = self._get(self._geo_url, {"q": city, "limit": 1})
        if not places:
            raise WeatherLookupError(f"找不到城市：{city}")
        return places[0]

    def current(self, city: str) -> Dict[str, Any]:
        place = self.geocode(city)
        data = self._get(
            f"{self._base_url}/weather",
            {"lat": place["lat"], "lon": place["lon"], "units": "metric", "lang": "zh_tw"},
        )
        main = data.get("main", {})
        condition = (data.get("weather") or [{}])[0]
        return {
            "city": place.get("name", city),
            "country": place.get("country", ""),
            "condition": condition.get("main"),
            "description": condition.get("description"),
            "temperature_c": round(main.get("temp", 0)),
            "feels_like_c": round(main.get("feels_like", 0)),
            "humidity_pct": main.get("humidity"),
            "pressure_hpa": main.get("pressure"),
            "wind_speed_ms": (data.get("wind") or {}).get("speed"),
            "visibility_km": round((data.get("visibility") or 0) / 1000),
            "source": "OpenWeatherMap",
        }

    def forecast(self, city: str, days: int = 5) -> Dict[str, Any]:
        place = self.geocode(city)
        data = self._get(
            f"{self._base_url}/forecast",
            {"lat": place["lat"], "lon": place["lon"], "units": "metric", "lang": "zh_tw"},
        )
        offset = timedelta(seconds=(data.get("city") or {}).get("timezone", 0))

        # 3-hour slots grouped by local calendar date
        by_day: "OrderedDict[str, list]" = OrderedDict()
        for item in data.get("list", []):
            local = datetime.fromtimestamp(item["dt"], tz=timezone.utc) + offset
            by_day.setdefault(local.date().isoformat(), []).append(item)

        daily = []
        for date, items in list(by_day.items())[:days]:
            temps = [item["main"]["temp"] for item in items]
            condition = (items[0].get("weather") or [{}])[0]
            daily.append({
                "date": date,
                "condition": condition.get("main"),
                "description": condition.get("description"),
                "min_c": round(min(temps)),
                "max_c": round(max(temps)),
            })

        return {
            "city": place.get("name", city),
            "country": place.get("country", ""),
            "days": daily,
            "source": "OpenWeatherMap",
        }


class WeatherQueryTool(Tool):
    """
    Current weather for a city.
    """

    capability = Capability.WEATHER

    def __init__(self, client: WeatherClient):
        self._client = client

    @property
    def name(self) -> str:
        return "weather_query"

    @property
    def description(self) -> str:
        return "查詢指定城市的當前天氣資訊。輸入參數：城市名稱（中文或英文）"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "city": {"type": "string", "description": "City name, e.g. '台北' or 'Taipei'"},
            },
            "required": ["city"],
        }

    def run(self, input: Dict[str, Any]) -> ToolResult:
        city = str(input.get("city", "")).strip()
        if not city:
            return ToolResult.fail("Missing 'city' in input")
        try:
            return ToolResult.ok(self._client.current(city))
        except WeatherLookupError as e:
            logger.warning(f"Weather lookup failed for {city}: {e}")
            return ToolResult.fail(f"無法取得 {city} 的天氣資訊：{e}")


class WeatherForecastTool(Tool):
    """
    Daily forecast (up to 5 days) for a city.
    """

    capability = Capability.WEATHER

    def __init__(self, client: WeatherClient):
        self._client = client

    @property
    def name(self) -> str:
        return "weather_forecast"

    @property
    def description(self) -> str:
        return "查詢指定城市的5天天氣預報。輸入參數：城市名稱（中文或英文）"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "city": {"type": "string", "description": "City name"},
                "days": {"type": "integer", "minimum": 1, "maximum": 5, "description": "Number of days"},
            },
            "required": ["city"],
        }

    def run(self, input: Dict[str, Any]) -> ToolResult:
        city = str(input.get("city", "")).strip()
        if not city:
            return ToolResult.fail("Missing 'city' in input")
        try:
            days = max(1, min(5, int(input.get("days") or 5)))
        except (TypeError, ValueError):
            days = 5
        try:
            return ToolResult.ok(self._client.forecast(city, days=days))
        except WeatherLookupError as e:
            logger.warning(f"Forecast lookup failed for {city}: {e}")
            return ToolResult.fail(f"無法取得 {city} 的天氣預報：{e}")
