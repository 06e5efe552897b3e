# tests/test_seeds.py
import json

import pytest
from conftest import FakeResponse

from modules.ats_ingest.lib import seeds
from modules.ats_ingest.lib.config import ConfigError
from modules.ats_ingest.lib.models import AtsType
from modules.ats_ingest.lib.scrapers import ashby

WD = "https://acme.wd5.myworkdayjobs.com/wday/cxs/acme/External/jobs"


@pytest.mark.parametrize(
    "entry,ats,slug",
    [
        ({"name": "Acme", "ats": "greenhouse", "greenhouse_company": "acme"}, AtsType.GREENHOUSE, "acme"),
        ({"name": "Acme", "greenhouse_slug": "acme-inc"}, AtsType.GREENHOUSE, "acme-inc"),
        ({"name": "Acme", "lever_company": "acme"}, AtsType.LEVER, "acme"),
        ({"name": "Acme", "careers_url": "https://jobs.ashbyhq.com/acme"}, AtsType.ASHBY, "acme"),
        ({"name": "Acme", "careers_url": "https://boards.greenhouse.io/acme"}, AtsType.GREENHOUSE, "acme"),
        ({"name": "Acme", "careers_url": "https://acme.com/careers"}, AtsType.GENERIC, None),
        ({"name": "Acme", "workday_url": WD}, AtsType.WORKDAY, None),
        ({"name": "Acme", "ats": "taleo"}, AtsType.UNKNOWN, None),
        ({"name": "Acme", "slug": "acme"}, AtsType.UNKNOWN, "acme"),
        ({"name": "Acme", "id": 42, "ats": "ashby", "careers_url": "https://jobs.ashbyhq.com/acme"}, AtsType.ASHBY, "acme"),
        ({"name": "Acme", "company": "Acme Inc", "careers_url": "https://boards.greenhouse.io/acme"}, AtsType.GREENHOUSE, "acme"),
        ({"name": "Acme", "id": "3f1c9a"}, AtsType.UNKNOWN, None),
        ({"name": "Acme", "company": "acme-co", "careers_url": "https://acme.com/jobs"}, AtsType.GENERIC, "acme-co"),
    ],
)
def test_company_from_entry(entry, ats, slug):
    company = seeds.company_from_entry(entry)
    assert company.name == "Acme"
    assert company.ats is ats
    assert company.slug == slug


def test_plain_string_uses_default_ats():
    company = seeds.company_from_entry("stripe", AtsType.GREENHOUSE)
    assert (company.name, company.slug, company.ats) == ("stripe", "stripe", AtsType.GREENHOUSE)
    assert seeds.company_from_entry("stripe").ats is AtsType.UNKNOWN


def test_workday_prefers_workday_url():
    company = seeds.company_from_entry(
        {"name": "Acme", "ats": "workday", "careers_url": "https://acme.com/careers", "workday_url": WD}
    )
    assert company.careers_url == WD


@pytest.mark.parametrize("entry", [None, 42, "", "   ", {}, {"ats": "lever"}])
def test_unusable_entries(entry):
    assert seeds.company_from_entry(entry) is None


def test_country_and_domain_carry_over():
    company = seeds.company_from_entry({"name": "Acme", "lever": "acme", "country": "CA", "domain": "acme.ca"})
    assert company.country == "CA"
    assert company.domain == "acme.ca"
    assert seeds.company_from_entry({"name": "Acme"}).country == "US"


def test_read_seed_file_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        seeds.read_seed_file(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid JSON"):
        seeds.read_seed_file(bad)

    obj = tmp_path / "obj.json"
    obj.write_text('{"companies": []}', encoding="utf-8")
    with pytest.raises(ConfigError, match="JSON array"):
        seeds.read_seed_file(obj)


def test_load_companies_from_seed_file(settings, http_client, fake_session):
    companies = seeds.load_companies(settings, http_client)
    assert [c.label for c in companies] == ["greenhouse:acme"]
    assert fake_session.calls == []


def test_load_companies_rejects_empty_source(settings_with, http_client, tmp_path):
    path = tmp_path / "empty.json"
    path.write_text(json.dumps([{}, 7]), encoding="utf-8")
    with pytest.raises(ConfigError, match="No usable companies"):
        seeds.load_companies(settings_with(seed_file=str(path)), http_client)


def test_load_companies_from_remote_source(settings_with, http_client, fake_session):
    url = "https://sink.example.test/api/get-companies"
    fake_session.add(
        "GET",
        url,
        FakeResponse(200, {"companies": [{"name": "Beta", "ats": "lever", "lever_company": "beta"}]}),
    )

    companies = seeds.load_companies(settings_with(seed_file=None, companies_url=url), http_client)

    assert [c.label for c in companies] == ["lever:beta"]
    assert fake_session.calls[0].kwargs["headers"] == {"x-scraper-key": "test-secret-key"}


def test_remote_source_without_companies_array(http_client, fake_session):
    url = "https://sink.example.test/api/get-companies"
    fake_session.add("GET", url, FakeResponse(200, {"error": "nope"}))
    with pytest.raises(ConfigError):
        seeds.fetch_remote_companies(url, "k", http_client)


def test_shard_entries():
    entries = [f"c{i}" for i in range(5)]
    assert seeds.shard_count(5, 2) == 3
    assert seeds.shard_count(0, 2) == 0
    assert seeds.shard_entries(entries, 0, 2) == ["c0", "c1"]
    assert seeds.shard_entries(entries, 2, 2) == ["c4"]
    with pytest.raises(ConfigError, match="out of range"):
        seeds.shard_entries(entries, 3, 2)
    with pytest.raises(ConfigError):
        seeds.shard_entries(entries, 0, 0)
    with pytest.raises(ConfigError):
        seeds.shard_entries(entries, -1, 2)


def test_write_and_validate_seed(tmp_path):
    path = seeds.write_seed_file(tmp_path / "out" / "shard.json", [{"name": "Acme", "lever": "acme"}, "x"])
    companies = seeds.validate_seed(path)
    assert [c.ats for c in companies] == [AtsType.LEVER, AtsType.UNKNOWN]

    empty = seeds.write_seed_file(tmp_path / "empty.json", [])
    with pytest.raises(ConfigError):
        seeds.validate_seed(empty)


def test_board_url_slug_reaches_the_extractor(http_client, fake_session, settings):
    company = seeds.company_from_entry(
        {"id": "3f1c9a", "name": "Acme", "ats": "ashby", "careers_url": "https://jobs.ashbyhq.com/acme"}
    )
    fake_session.add(
        "GET",
        "https://api.ashbyhq.com/posting-api/job-board/acme",
        FakeResponse(200, {"jobs": [{"id": "j1", "title": "Data Engineer"}]}),
    )

    jobs = ashby.AshbyPostingApiExtractor(http_client, settings).extract(company)

    assert [j.job_key for j in jobs] == ["ashby:acme:j1"]
