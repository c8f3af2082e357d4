# ABOUTME: Test helpers shared across the weather logger test suite.
# ABOUTME: Builds httpx responses, mock clients, realistic composite entries, and a no-op sleep.

from unittest.mock import AsyncMock

import httpx


TARGET_ID = "51.50999832,-0.13"


def make_response(json_data=None, status_code: int = 200, content: bytes | None = None) -> httpx.Response:
    """Build a real httpx.Response bound to a dummy request so raise_for_status works."""
    request = httpx.Request("GET", "https://test")
    if content is not None:
        return httpx.Response(status_code=status_code, content=content, request=request)
    return httpx.Response(status_code=status_code, json=json_data, request=request)


def mock_client(*responses) -> httpx.AsyncClient:
    """Create a mock httpx.AsyncClient whose get() yields the given responses or exceptions in order."""
    mock = AsyncMock(spec=httpx.AsyncClient)
    if len(responses) == 1 and not isinstance(responses[0], BaseException):
        mock.get.return_value = responses[0]
    else:
        mock.get.side_effect = list(responses)
    return mock


def london_entry(temperature=18.2, valid_time_local="2024-05-01T12:00:00", entry_id=TARGET_ID) -> dict:
    """A composite entry as the aggcommon endpoint returns it."""
    return {
        "id": entry_id,
        "v3alertsHeadlines": None,
        "v3-location-point": {
            "location": {
                "city": "London",
                "displayContext": "England, United Kingdom",
                "ianaTimeZone": "Europe/London",
                "pwsId": "ILONDON123",
                "countryCode": "GB",
            }
        },
        "v3-wx-observations-current": {
            "temperature": temperature,
            "validTimeUtc": 1714561200,
            "validTimeLocal": valid_time_local,
            "temperatureMax24Hour": 19.0,
            "temperatureMin24Hour": 9.0,
            "relativeHumidity": 61,
            "windSpeed": 13,
            "windDirectionCardinal": "WSW",
            "pressureMeanSeaLevel": 1013.2,
            "wxPhraseLong": "Partly Cloudy",
        },
    }


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


