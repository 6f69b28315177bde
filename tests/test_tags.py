import pytest

from rumba.tags import Tags, UserAgentInfo, parse_user_agent

PATH = "/1.5/42/storage/meta/global"
FIREFOX_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:72.0) Gecko/20100101 Firefox/72.0"
)
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)
EDGE_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
OPERA_LINUX = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36 OPR/105.0.0.0"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0"
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Mobile Safari/537.36"
)


def test_tags():
    tags = Tags.from_request_head({"User-Agent": FIREFOX_WINDOWS}, "GET", PATH)
    assert tags.tags == {
        "ua.os.ver": "NT 10.0",
        "ua.os.family": "Windows",
        "ua.browser.ver": "72.0",
        "ua.name": "Firefox",
        "ua.browser.family": "Firefox",
        "uri.method": "GET",
    }
    assert tags.extra == {"ua": FIREFOX_WINDOWS, "uri.path": PATH}


def test_no_empty_tags():
    headers = {"user-agent": "Mozilla/5.0 (curl) Gecko/20100101 curl"}
    tags = Tags.from_request_head(headers, "GET", PATH)
    assert "ua.os.ver" not in tags.tags
    assert all(tags.tags.values())


def test_no_user_agent():
    tags = Tags.from_request_head({}, "POST", PATH)
    assert tags.tags == {"uri.method": "POST"}
    assert tags.extra == {"uri.path": PATH}


def test_non_ascii_user_agent_is_skipped():
    tags = Tags.from_request_head({"User-Agent": b"Mozilla\xff"}, "GET", PATH)
    assert tags.tags == {"uri.method": "GET"}
    assert "ua" not in tags.extra


def test_bytes_user_agent():
    tags = Tags.from_request_head({"User-Agent": FIREFOX_WINDOWS.encode()}, "GET", PATH)
    assert tags.get("ua.name") == "Firefox"


@pytest.mark.parametrize(
    "agent, os_family, browser_family",
    [
        (SAFARI_MAC, "Mac OSX", "Safari"),
        (EDGE_WINDOWS, "Windows", "Other"),
        (OPERA_LINUX, "Linux", "Opera"),
        (FIREFOX_LINUX, "Linux", "Firefox"),
        (CHROME_ANDROID, "Other", "Chrome"),
        ("", "Other", "Other"),
    ],
)
def test_metrics_families(agent, os_family, browser_family):
    _, metrics_os, metrics_browser = parse_user_agent(agent)
    assert (metrics_os, metrics_browser) == (os_family, browser_family)


def test_parse_details():
    info, _, _ = parse_user_agent(SAFARI_MAC)
    assert info.name == "Safari"
    assert info.version == "17.1"
    assert info.os == "Mac OSX"
    assert info.os_version == "10.15.7"


def test_parse_empty_gives_blank_info():
    info, _, _ = parse_user_agent("   ")
    assert info == UserAgentInfo()


def test_edge_name_kept():
    info, _, _ = parse_user_agent(EDGE_WINDOWS)
    assert info.name == "Edge"
    assert info.os.startswith("Windows")


def test_with_tags_empty_is_default():
    assert Tags.with_tags({}) == Tags()


def test_with_tags_and_get():
    tags = Tags.with_tags({"a": "1"})
    assert tags.get("a") == "1"
    assert tags.get("missing") == "None"
    assert tags.extra == {}


def test_extend_overrides():
    tags = Tags.with_tags({"a": "1", "b": "2"})
    tags.extend({"b": "3", "c": "4"})
    assert tags.tags == {"a": "1", "b": "3", "c": "4"}


def test_trees_are_sorted_copies():
    tags = Tags({"z": "1", "a": "2"}, {"y": "3", "b": "4"})
    tree = tags.tag_tree()
    assert list(tree) == ["a", "z"]
    tree["new"] = "x"
    assert "new" not in tags.tags
    assert list(tags.extra_tree()) == ["b", "y"]


def test_to_json_drops_empty_values():
    tags = Tags({"a": "", "b": "value"})
    assert tags.to_json() == {"b": "value"}