from __future__ import annotations

from datetime import timedelta

from core.domain.models import Company
from core.services.usage import UsageTracker


def test_record_increments_within_day(now):
    tracker = UsageTracker()
    company = Company(id="c", name="X", api_request_count=3, last_api_request_at=now)
    updated = tracker.record(company, now + timedelta(hours=1))
    assert updated.api_request_count == 4
    assert company.api_request_count == 3


def test_record_resets_on_new_day(now):
    tracker = UsageTracker()
    company = Company(id="c", name="X", api_request_count=49, last_api_request_at=now - timedelta(days=1))
    assert tracker.record(company, now).api_request_count == 1


def test_availability_and_remaining(now):
    tracker = UsageTracker(default_daily_limit=5)
    company = Company(id="c", name="X", api_request_count=5, last_api_request_at=now)
    assert not tracker.is_available(company, now)
    assert tracker.remaining(company, now) == 0
    assert tracker.is_available(company, now + timedelta(days=1))
    assert tracker.remaining(company, now + timedelta(days=1)) == 5


def test_company_limit_overrides_default(now):
    tracker = UsageTracker()
    company = Company(id="c", name="X", daily_api_request_limit=10, api_request_count=9, last_api_request_at=now)
    assert tracker.remaining(company, now) == 1


def test_allocate_daily_limit():
    tracker = UsageTracker(default_daily_limit=50, global_limit=100)
    companies = [Company(id="a", name="A", daily_api_request_limit=50)]
    assert tracker.allocate_daily_limit(companies).limit == 50
    companies.append(Company(id="b", name="B", daily_api_request_limit=30))
    allocation = tracker.allocate_daily_limit(companies)
    assert allocation.limit == 20
    assert allocation.reduced
