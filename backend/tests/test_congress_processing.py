"""
Tests for Congress.gov payload processing and list sweeping.
"""

from datetime import datetime, timezone

import httpx
import pytest

from legisync.integrations.congress.fetchers import (
    add_month,
    fetch_bill_window,
    fetch_bills_for_type,
    fetch_cosponsors,
    month_windows,
)
from legisync.integrations.congress.processors import (
    format_bill_number,
    process_actions,
    process_committees,
    process_sponsors,
    resolve_chamber,
)
from legisync.models.bill import ActivityType, CommitteeChamber


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestSponsorProcessing:

    def test_builds_rows_for_primary_and_cosponsors(self):
        result = process_sponsors(
            [{"firstName": "Jane", "lastName": "Doe", "party": "D", "state": "CA", "district": 12}],
            [{"fullName": "Sen. John Roe [R-TX]", "party": "R", "state": "TX",
              "sponsorshipDate": "2023-02-01", "isOriginalCosponsor": True}],
        )

        assert result.dropped == 0
        primary, cosponsor = result.rows
        assert primary["name"] == "Jane Doe"
        assert primary["district"] == "12"
        assert primary["is_primary"] is True
        assert cosponsor["name"] == "Sen. John Roe [R-TX]"
        assert cosponsor["is_primary"] is False
        assert cosponsor["is_original_cosponsor"] is True
        assert cosponsor["sponsorship_date"] == utc(2023, 2, 1)

    def test_drops_invalid_sponsors(self):
        result = process_sponsors(
            [{"firstName": "Jane", "lastName": "Doe", "party": "D", "state": "CA"}],
            [
                {"firstName": "No", "lastName": "Party", "state": "TX"},
                {"party": "R", "state": "TX"},
                {"fullName": "No State", "party": "I", "state": "  "},
            ],
        )

        assert len(result.rows) == 1
        assert result.dropped == 3
        assert len(result.reasons) == 3


class TestCommitteeProcessing:

    def test_flattens_activities(self):
        result = process_committees([{
            "name": "Judiciary Committee",
            "chamber": "House",
            "systemCode": "hsju00",
            "activities": [
                {"name": "Referred to", "date": "2023-01-10T15:00:00Z"},
                {"name": "Markup by", "date": "2023-02-10T15:00:00Z"},
                {"name": "Reported by", "date": "2023-03-10T15:00:00Z"},
                {"name": "Hearings held", "date": "2023-03-11T15:00:00Z"},
                {"name": "Committee Consideration", "date": "2023-03-12T15:00:00Z"},
            ],
        }])

        assert result.dropped == 0
        assert [row["activity_type"] for row in result.rows] == [
            ActivityType.REFERRED,
            ActivityType.MARKUP,
            ActivityType.REPORTED,
            ActivityType.HEARING,
            ActivityType.OTHER,
        ]
        assert all(row["committee_chamber"] == CommitteeChamber.HOUSE for row in result.rows)
        assert result.rows[0]["committee_system_code"] == "hsju00"

    def test_drops_committee_without_chamber_and_bad_activities(self):
        result = process_committees([
            {"name": "Finance Committee", "activities": [{"name": "Referred to", "date": "2023-01-10"}]},
            {
                "name": "Finance Committee",
                "chamber": "Senate",
                "activities": [
                    {"name": "Referred to", "date": "2023-01-10"},
                    {"name": "Referred to", "date": "someday"},
                    {"date": "2023-01-11"},
                ],
            },
        ])

        assert len(result.rows) == 1
        assert result.rows[0]["committee_chamber"] == CommitteeChamber.SENATE
        assert result.dropped == 3


class TestActionProcessing:

    def test_keeps_valid_dates_newest_first(self):
        actions = process_actions([
            {"actionDate": "2023-01-01", "text": "Introduced in House", "actionCode": "Intro-H"},
            {"actionDate": "bogus", "text": "Broken"},
            {"actionDate": "2023-03-01", "text": "Passed House", "actionCode": "8000"},
            {"text": "No date"},
        ])

        assert [a.text for a in actions] == ["Passed House", "Introduced in House"]
        assert actions[0].date == utc(2023, 3, 1)
        assert actions[0].code == "8000"


class TestBillHelpers:

    def test_format_bill_number(self):
        assert format_bill_number("hr", 1) == "HR1"
        assert format_bill_number("sjres", "12") == "SJRES12"

    def test_resolve_chamber(self):
        assert resolve_chamber({"originChamber": "Senate"}, "hr") == "senate"
        assert resolve_chamber({}, "hjres") == "house"
        assert resolve_chamber({}, "s") == "senate"


class TestMonthWindows:

    def test_add_month_clamps_day(self):
        assert add_month(utc(2023, 1, 31)) == utc(2023, 2, 28)
        assert add_month(utc(2023, 12, 3)) == utc(2024, 1, 3)

    def test_windows_cover_session(self):
        windows = list(month_windows(utc(2023, 1, 3), utc(2025, 1, 3), now=utc(2030, 1, 1)))

        assert len(windows) == 24
        assert windows[0] == (utc(2023, 1, 3), utc(2023, 2, 3))
        assert windows[-1][1] == utc(2025, 1, 3)

    def test_windows_stop_at_now(self):
        windows = list(month_windows(utc(2025, 1, 3), utc(2027, 1, 3), now=utc(2025, 3, 15)))

        assert windows == [
            (utc(2025, 1, 3), utc(2025, 2, 3)),
            (utc(2025, 2, 3), utc(2025, 3, 3)),
            (utc(2025, 3, 3), utc(2025, 3, 15)),
        ]


@pytest.mark.asyncio
class TestListSweep:

    async def test_window_pagination(self, congress_client, fake_api):
        pages = {
            "0": [{"number": str(n)} for n in range(2)],
            "2": [{"number": "2"}],
        }
        fake_api.add(
            "/bill/118/hr",
            lambda request: httpx.Response(200, json={"bills": pages[request.url.params["offset"]]}),
        )

        bills = await fetch_bill_window(congress_client, 118, "hr", utc(2023, 1, 3), utc(2023, 2, 3), limit=2)

        assert [b["number"] for b in bills] == ["0", "1", "2"]
        params = fake_api.requests[-1].url.params
        assert params["fromDateTime"] == "2023-01-03T00:00:00Z"
        assert params["toDateTime"] == "2023-02-03T00:00:00Z"
        assert params["sort"] == "updateDate desc"

    async def test_sweep_deduplicates_by_number(self, congress_client, fake_api):
        fake_api.add("/bill/118/hr", {"bills": [{"number": "1", "title": "A"}, {"number": "2"}]})

        bills = await fetch_bills_for_type(congress_client, 118, "hr", now=utc(2023, 4, 1))

        assert [b["number"] for b in bills] == ["1", "2"]
        # Jan 3 - Apr 1 spans three windows
        assert fake_api.calls_to("/bill/118/hr") == 3

    async def test_collection_fetch(self, congress_client, fake_api):
        fake_api.add("/bill/118/hr/1/cosponsors", {"cosponsors": [{"fullName": "A"}]})

        cosponsors = await fetch_cosponsors(congress_client, 118, "hr", 1)

        assert cosponsors == [{"fullName": "A"}]
