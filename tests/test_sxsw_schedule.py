"""Unit tests for the schedule site scraper."""
import logging
from datetime import datetime, timedelta

import pytest

from processor.models import RatedItem, RunState
from processor.taste import TasteFilter
from scraper.sxsw_schedule import (
    SHARDS,
    SxswScheduleScraper,
    parse_clock,
    parse_date_range,
    parse_show_time,
)

INDEX_URL = "http://schedule.example.com/2012/?conference=music&category=Showcase"
BASE_URL = "http://schedule.example.com/2012/"

INDEX_BODY = """
<div class="header row-header"><span>Artist</span><span>Venue</span></div>
<div class="row odd">
  <a href="event_MS12345">LoudBand</a>
  <div class="loc">Stubb's</div>
  <div class="date">Thu Mar 15<br>8:00PM-8:40PM</div>
</div>
<div class="row even">
  <a href="event_MS99999">LoudBand</a>
  <div class="loc">Stubb's Indoors</div>
  <div class="date">Thu Mar 15 8:00PM-8:40PM</div>
</div>
<div class="row odd">
  <a href="event_MS22222">Loud Band</a>
  <div class="loc">Mohawk</div>
  <div class="date">Fri Mar 16 1:00AM-1:40AM</div>
</div>
<div class="row even">
  <a href="event_MS33333">Boring Band</a>
  <div class="loc">Emo's</div>
  <div class="date">Fri Mar 16 9:00PM-9:40PM</div>
</div>
<div class="row odd">
  <a href="event_MS44444">LoudBand</a>
  <div class="date">Sat Mar 17 9:00PM-9:40PM</div>
</div>
<div class="row even">
  <a href="event_MS55555">LoudBand</a>
  <div class="loc">Red 7</div>
  <div class="date">Sat Mar 17 TBA</div>
</div>
"""


@pytest.fixture
def taste():
    return TasteFilter.build([RatedItem(artist="LoudBand", rating_percent=80)], min_stars=3)


def make_scraper(fetcher, taste, central, state=None, debug=0):
    return SxswScheduleScraper(fetcher, taste, state or RunState(), INDEX_URL,
                               central, 2012, debug=debug)


class TestDateParsing:
    """Test cases for the listing date parsers."""

    def test_parse_show_time_evening(self, central):
        """Test an ordinary evening show."""
        start = parse_show_time("Thu Mar 15", "8:00PM", 2012, central)

        assert start == datetime(2012, 3, 15, 20, 0, tzinfo=central)
        assert start.utcoffset() == timedelta(hours=-5)

    def test_parse_show_time_early_morning_rolls_over(self, central):
        """Test that "Thu Mar 15, 1:00 AM" means the 16th."""
        start = parse_show_time("Thu Mar 15,", "1:00 AM", 2012, central)

        assert start.day == 16
        assert start.hour == 1

    def test_rollover_crosses_month_end(self, central):
        """Test that the day rollover uses calendar arithmetic."""
        start = parse_show_time("Sat Mar 31", "2:00AM", 2012, central)

        assert (start.month, start.day) == (4, 1)

    def test_six_am_does_not_roll_over(self, central):
        """Test the rollover boundary."""
        assert parse_show_time("Thu Mar 15", "6:00AM", 2012, central).day == 15
        assert parse_show_time("Thu Mar 15", "5:59AM", 2012, central).day == 16

    @pytest.mark.parametrize('day', ["Thu Mar 15", "Thursday, March 15", "Mar 15", "03/15"])
    def test_day_formats(self, day, central):
        """Test the supported day formats."""
        assert parse_show_time(day, "9:00 PM", 2012, central).date() == \
            datetime(2012, 3, 15).date()

    @pytest.mark.parametrize('clock,expected', [
        ("8:00PM", (20, 0)),
        ("8:30 pm", (20, 30)),
        ("1:00 a.m.", (1, 0)),
        ("12:00AM", (0, 0)),
        ("23:15", (23, 15)),
    ])
    def test_parse_clock(self, clock, expected):
        """Test clock formats."""
        parsed = parse_clock(clock)
        assert (parsed.hour, parsed.minute) == expected

    def test_parse_date_range(self, central):
        """Test a full listing date."""
        start, end = parse_date_range("Thu Mar 15 8:00PM-8:40PM", 2012, central)

        assert start == datetime(2012, 3, 15, 20, 0, tzinfo=central)
        assert end == datetime(2012, 3, 15, 20, 40, tzinfo=central)

    def test_parse_date_range_past_midnight(self, central):
        """Test a show spanning midnight with an en dash separator."""
        start, end = parse_date_range("Thu Mar 15, 11:00 PM – 12:00 AM", 2012, central)

        assert start == datetime(2012, 3, 15, 23, 0, tzinfo=central)
        assert end == datetime(2012, 3, 16, 0, 0, tzinfo=central)

    @pytest.mark.parametrize('text', ["Sat Mar 17 TBA", "Thu Mar 15, 1:00 AM", "", "Someday 8:00PM-9:00PM"])
    def test_parse_date_range_unparsable(self, text, central):
        """Test that unparsable dates return None."""
        assert parse_date_range(text, 2012, central) is None


class TestSxswScheduleScraper:
    """Test cases for SxswScheduleScraper class."""

    def test_parse_page(self, fake_fetcher, html_page, taste, central):
        """Test row extraction, filtering, dedup and rollover."""
        fetcher = fake_fetcher({})
        scraper = make_scraper(fetcher, taste, central)

        events = scraper.parse_page(html_page(INDEX_BODY))

        assert [e.event_url for e in events] == [
            BASE_URL + "event_MS12345",
            BASE_URL + "event_MS22222",
        ]

        first = events[0]
        assert first.band == "LoudBand"
        assert first.venue_name == "Stubb's"
        assert first.venue_address is None
        assert first.start == datetime(2012, 3, 15, 20, 0, tzinfo=central)
        assert first.end == datetime(2012, 3, 15, 20, 40, tzinfo=central)
        assert first.source == "sxsw.com"

        second = events[1]
        assert second.band == "Loud Band"
        assert second.start == datetime(2012, 3, 17, 1, 0, tzinfo=central)

    def test_dedup_first_wins(self, fake_fetcher, html_page, taste, central):
        """Test that the same band and start time is kept once."""
        state = RunState()
        scraper = make_scraper(fake_fetcher({}), taste, central, state=state)

        events = scraper.parse_page(html_page(INDEX_BODY))

        stubbs = [e for e in events if e.start.day == 15]
        assert len(stubbs) == 1
        assert stubbs[0].venue_name == "Stubb's"
        assert "loudband @ 20120315t200000" in state.seen

    def test_bands_of_interest_only(self, fake_fetcher, html_page, taste, central):
        """Test that bands outside the taste filter are skipped."""
        scraper = make_scraper(fake_fetcher({}), taste, central)

        events = scraper.parse_page(html_page(INDEX_BODY))

        assert "Boring Band" not in [e.band for e in events]

    def test_debug_keeps_every_band(self, fake_fetcher, html_page, taste, central):
        """Test the debug override of the taste filter."""
        scraper = make_scraper(fake_fetcher({}), taste, central, debug=1)

        events = scraper.parse_page(html_page(INDEX_BODY))

        assert "Boring Band" in [e.band for e in events]

    def test_enrichment(self, fake_fetcher, html_page, taste, central):
        """Test that the band page fills in the description."""
        band_page = html_page(
            '<div id="main"><div class="block">Loud and proud.</div></div>'
            '<p>Online <a href="http://loudband.com">site</a></p>'
        )
        fetcher = fake_fetcher({BASE_URL + "event_MS12345": band_page})
        scraper = make_scraper(fetcher, taste, central)

        events = scraper.parse_page(html_page(INDEX_BODY))

        assert events[0].detail_url == "http://loudband.com/"
        assert events[0].description == "http://loudband.com/\n\nLoud and proud."
        assert events[1].description == ''

    def test_empty_page(self, fake_fetcher, taste, central):
        """Test that a failed index fetch yields no events."""
        scraper = make_scraper(fake_fetcher({}), taste, central)

        assert scraper.parse_page("FAILED after 5 tries") == []

    def test_extract_walks_every_shard(self, fake_fetcher, html_page, taste, central):
        """Test pagination over 1, a..z and dedup across passes."""
        fetcher = fake_fetcher({INDEX_URL + "&a=l": html_page(INDEX_BODY)})
        scraper = make_scraper(fetcher, taste, central)

        events = scraper.extract()

        assert len(events) == 2
        index_calls = [c for c in fetcher.fetch.call_args_list if '&a=' in c.args[0]]
        assert [c.args[0] for c in index_calls] == [f"{INDEX_URL}&a={s}" for s in SHARDS]

        # A second pass finds nothing new.
        assert scraper.extract() == []

    def test_debug_two_stops_after_first_shard(self, fake_fetcher, taste, central):
        """Test that debug level 2 scrapes only one index page."""
        fetcher = fake_fetcher({})
        scraper = make_scraper(fetcher, taste, central, debug=2)

        scraper.extract()

        fetcher.fetch.assert_called_once_with(INDEX_URL + "&a=1")


class TestWanted:
    """Test cases for the taste check shared by the extractors."""

    def test_loose_match_logs_library_spelling(self, fake_fetcher, taste, central, caplog):
        """Test that a differently spelled band matches and the library name is logged."""
        scraper = make_scraper(fake_fetcher({}), taste, central)

        with caplog.at_level(logging.DEBUG, logger='scraper.base'):
            assert scraper.wanted("The Loud-Band!")

        assert '"The Loud-Band!" matches library artist "LoudBand"' in caplog.text

    def test_exact_match_and_miss(self, fake_fetcher, taste, central):
        """Test plain membership with and without debug."""
        assert make_scraper(fake_fetcher({}), taste, central).wanted("LoudBand")
        assert not make_scraper(fake_fetcher({}), taste, central).wanted("Boring Band")
        assert make_scraper(fake_fetcher({}), taste, central, debug=1).wanted("Boring Band")
