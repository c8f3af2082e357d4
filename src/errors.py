# ABOUTME: Exception types raised by the weather logger.
# ABOUTME: Separates fatal startup errors from cycle-local failures that only skip one poll.


class WeatherLoggerError(Exception):
    """Base class for all weather logger errors."""


class ConfigurationError(WeatherLoggerError):
    """Required settings are missing or invalid. Fatal at startup."""


class FetchExhausted(WeatherLoggerError):
    """Every fetch attempt failed. The current cycle is skipped."""

    def __init__(self, attempts: int, last_error: BaseException | None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Fetch failed after {attempts} attempt(s): {last_error!r}")


class ResponseShapeError(WeatherLoggerError):
    """The feed answered, but not with data this logger can record."""
