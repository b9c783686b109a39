"""Serialization of events into an iCalendar file."""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from processor.errors import OutputError
from processor.models import EventRecord
from processor.text import ical_datetime, ical_quote

logger = logging.getLogger(__name__)


class CalendarWriter:
    """Renders events as one VCALENDAR document and writes it to disk."""

    PRODID = '-//festival-calendar//Bands of Interest 1.0//EN'

    def __init__(self, timezone_name: str, now: Optional[datetime] = None):
        """
        Initialize the writer.

        Args:
            timezone_name: Festival timezone, used for TZID and X-WR-TIMEZONE
            now: Creation time for DTSTAMP (default: current UTC time)
        """
        self.timezone_name = timezone_name
        self.now = now

    def render(self, events: List[EventRecord]) -> str:
        """
        Render the complete calendar.

        Events are sorted by start then summary, and numbered with SEQUENCE
        in that order.

        Args:
            events: Events to include

        Returns:
            Calendar text with CRLF line endings
        """
        now = self.now or datetime.now(timezone.utc)
        dtstamp = now.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')

        fields = [self._event_fields(event) for event in events]
        fields.sort(key=lambda f: (f['start'], f['summary']))

        lines = [
            'BEGIN:VCALENDAR',
            'VERSION:2.0',
            f'PRODID:{self.PRODID}',
            'METHOD:PUBLISH',
            f'X-WR-TIMEZONE;VALUE=TEXT:{self.timezone_name}',
            'CALSCALE:GREGORIAN',
        ]
        for sequence, event_fields in enumerate(fields):
            lines.extend(self._render_event(event_fields, sequence, dtstamp))
        lines.append('END:VCALENDAR')

        document = '\n'.join(lines) + '\n'
        # whitespace-only continuation lines
        document = re.sub(r'(\n )(\n )+', r'\1', document)
        return document.replace('\n', '\r\n')

    def write(self, path: str, events: List[EventRecord]) -> int:
        """
        Write the calendar to ``path``.

        Returns:
            Number of events written

        Raises:
            OutputError: If the file cannot be written
        """
        logger.info(f"Writing {path}")
        document = self.render(events)
        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(document)
        except OSError as e:
            raise OutputError(f"{path}: {e}") from e
        return len(events)

    def _event_fields(self, event: EventRecord) -> Dict[str, str]:
        start = ical_datetime(event.start)
        return {
            'uid': event.uid or event.event_url or f"{event.band}@{start}",
            'location': event.location,
            'summary': ical_quote(event.band),
            'start': start,
            'end': ical_datetime(event.end),
            'url': event.event_url,
            'description': event.description,
        }

    def _render_event(self, fields: Dict[str, str], sequence: int, dtstamp: str) -> List[str]:
        lines = [
            'BEGIN:VEVENT',
            f"UID:{ical_quote(fields['uid'])}",
            f'DTSTAMP:{dtstamp}',
            f'SEQUENCE:{sequence}',
            f"LOCATION:{ical_quote(fields['location'])}",
            f"SUMMARY:{fields['summary']}",
            f"DTSTART;TZID={self.timezone_name}:{fields['start']}",
            f"DTEND;TZID={self.timezone_name}:{fields['end']}",
        ]
        if fields['url']:
            lines.append(f"URL:{ical_quote(fields['url'])}")
        lines.extend([
            f"DESCRIPTION:{ical_quote(fields['description'])}",
            'CLASS:PUBLIC',
            'CATEGORIES:BAND',
            'STATUS:CONFIRMED',
            'END:VEVENT',
        ])
        return lines
