from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from site_crawler.cancellation import CancellationSignal
from site_crawler.dedup import Admission, VisitRegistry, normalize_url
from site_crawler.exceptions import InvalidURLError


def test_normalize_removes_fragment():
    assert normalize_url("https://example.com/path#section") == "https://example.com/path"


def test_normalize_keeps_query_and_drops_fragment():
    assert normalize_url("https://example.com/path?search=test#frag") == "https://example.com/path?search=test"


def test_normalize_fragment_only_gets_root_path():
    assert normalize_url("https://example.com#frag") == "https://example.com/"


def test_normalize_empty_fragment():
    assert normalize_url("https://example.com/path#") == "https://example.com/path"


def test_normalize_root_gets_trailing_slash():
    assert normalize_url("https://example.com") == "https://example.com/"


def test_normalize_preserves_path_and_trailing_slash():
    assert normalize_url("https://example.com/a/b/") == "https://example.com/a/b/"


def test_normalize_preserves_port():
    assert normalize_url("https://example.com:8080/path#frag") == "https://example.com:8080/path"


def test_normalize_preserves_query_order_and_encoding():
    assert (
        normalize_url("https://example.com/path?b=2&a=hello%20world#frag")
        == "https://example.com/path?b=2&a=hello%20world"
    )


def test_normalize_lowercases_scheme_and_host_only():
    assert normalize_url("HTTPS://A.TEST:443/X?b=1") == "https://a.test/X?b=1"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://a.test:80/", "http://a.test/"),
        ("https://a.test:443/x", "https://a.test/x"),
        ("http://a.test:443/x", "http://a.test:443/x"),
        ("https://a.test:80/x", "https://a.test:80/x"),
    ],
)
def test_normalize_drops_only_the_default_port(url, expected):
    assert normalize_url(url) == expected


def test_normalize_keeps_bare_query_marker():
    assert normalize_url("https://a.test/x?") == "https://a.test/x?"
    assert normalize_url("https://a.test/x?#frag") == "https://a.test/x?"
    assert normalize_url("https://a.test/x?") != normalize_url("https://a.test/x")


def test_normalize_keeps_userinfo_and_ipv6_host():
    assert normalize_url("http://user:pw@A.TEST:80/") == "http://user:pw@a.test/"
    assert normalize_url("http://[::1]:8080/x") == "http://[::1]:8080/x"


@pytest.mark.parametrize("bad", ["not-a-url", "/relative/path#frag", "", "   ", "http://[::1/x", "http://host:port/"])
def test_normalize_rejects_non_absolute(bad):
    with pytest.raises(InvalidURLError, match="Invalid URL"):
        normalize_url(bad)


def test_invalid_url_error_is_value_error():
    with pytest.raises(ValueError):
        normalize_url("nope")


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com",
        "https://example.com/a/b?x=1&y=2#top",
        "http://example.com:8080/#",
        "https://example.com/?q=%2Fa",
        "HTTPS://Example.COM:443/Path",
        "http://example.com/x?#",
    ],
)
def test_normalize_is_idempotent_and_fragment_free(url):
    once = normalize_url(url)
    assert normalize_url(once) == once
    assert "#" not in once


def test_first_admission_then_duplicates_increment():
    registry = VisitRegistry(max_pages=10)

    assert registry.try_admit("https://a.test/") is Admission.ADMITTED
    assert registry.count("https://a.test/") == 1

    assert registry.try_admit("https://a.test/") is Admission.REJECTED_DUPLICATE
    assert registry.try_admit("https://a.test/") is Admission.REJECTED_DUPLICATE
    assert registry.count("https://a.test/") == 3
    assert len(registry) == 1


def test_budget_exhaustion_sets_stop_flag_and_trips_signal():
    signal = CancellationSignal()
    registry = VisitRegistry(max_pages=2, signal=signal)

    assert registry.try_admit("https://a.test/1") is Admission.ADMITTED
    assert registry.try_admit("https://a.test/2") is Admission.ADMITTED
    assert not registry.stopped
    assert not signal.tripped

    assert registry.try_admit("https://a.test/3") is Admission.REJECTED_BUDGET_EXCEEDED
    assert registry.stopped
    assert signal.tripped
    # The URL that hit the budget is never recorded.
    assert "https://a.test/3" not in registry
    assert len(registry) == 2


def test_stop_flag_is_monotonic_and_blocks_everything():
    registry = VisitRegistry(max_pages=1)
    registry.try_admit("https://a.test/")
    registry.try_admit("https://a.test/other")
    assert registry.stopped

    # Once stopped, even a known URL is rejected without touching its count.
    assert registry.try_admit("https://a.test/") is Admission.REJECTED_BUDGET_EXCEEDED
    assert registry.count("https://a.test/") == 1
    for _ in range(3):
        registry.try_admit("https://a.test/new")
        assert registry.stopped
    assert registry.snapshot() == {"https://a.test/": 1}


def test_snapshot_is_a_copy():
    registry = VisitRegistry(max_pages=5)
    registry.try_admit("https://a.test/")
    snap = registry.snapshot()
    snap["https://a.test/"] = 99
    assert registry.count("https://a.test/") == 1


def test_registry_rejects_zero_budget():
    with pytest.raises(ValueError):
        VisitRegistry(max_pages=0)


def _admit_from_threads(registry: VisitRegistry, keys: list[str]) -> Counter:
    with ThreadPoolExecutor(max_workers=16) as pool:
        return Counter(pool.map(registry.try_admit, keys))


def test_concurrent_admission_admits_each_key_once():
    keys = [f"https://a.test/{i}" for i in range(10)] * 50
    registry = VisitRegistry(max_pages=100)

    outcomes = _admit_from_threads(registry, keys)

    assert outcomes[Admission.ADMITTED] == 10
    assert outcomes[Admission.REJECTED_DUPLICATE] == len(keys) - 10
    assert all(count == 50 for count in registry.snapshot().values())
    assert sum(registry.snapshot().values()) == len(keys)
    assert not registry.stopped


def test_concurrent_admission_stays_within_budget():
    keys = [f"https://a.test/{i}" for i in range(40)] * 5
    registry = VisitRegistry(max_pages=5)

    outcomes = _admit_from_threads(registry, keys)

    assert len(registry) == 5
    assert registry.stopped
    assert outcomes[Admission.ADMITTED] == len(registry)
    assert sum(outcomes.values()) == len(keys)
