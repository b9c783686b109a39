"""Fatal errors that abort a calendar build."""


class CalendarBuildError(Exception):
    """Base class for errors that stop the run."""


class ConfigError(CalendarBuildError):
    """Settings are unusable (e.g. unknown timezone)."""


class TasteSourceError(CalendarBuildError):
    """The media library export could not be read."""


class FeedFormatError(CalendarBuildError):
    """A field the feed format guarantees is missing."""


class OutputError(CalendarBuildError):
    """The calendar file could not be written."""
