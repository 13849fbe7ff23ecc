from webresearch.agents.strategy_generator import (
    detect_error_pattern,
    determine_search_type,
    generate_search_strategies,
    looks_like_person,
)
from webresearch.models.research import SearchType


def _names(query):
    return [s.name for s in generate_search_strategies(query)]


def test_plain_query_still_gets_general_strategy():
    strategies = generate_search_strategies("history of the printing press")
    assert [s.name for s in strategies] == ["general"]
    general = strategies[0]
    assert general.query_templates == ("history of the printing press",)
    assert "history of the printing press overview" in general.follow_up_queries


def test_permission_error_strategy_comes_before_general():
    names = _names("npm install fails with EACCES permission denied")
    assert names[0] == "error_linux_permission_denied"
    assert names.index("general") == 1
    # "install" makes it technical
    assert "documentation" in names
    assert "community" in names


def test_error_templates_substitute_command():
    strategies = generate_search_strategies("foo: command not found")
    error = strategies[0]
    assert error.name == "error_linux_command_not_found"
    assert error.query_templates[0] == "install foo: command not found linux"


def test_person_query_gets_profile_strategy_and_biography_follow_ups():
    strategies = generate_search_strategies("Ada Lovelace")
    names = [s.name for s in strategies]
    assert "people_profile" in names
    general = strategies[names.index("general")]
    assert "Ada Lovelace biography" in general.follow_up_queries
    profile = strategies[names.index("people_profile")]
    assert profile.query_templates[0] == "Ada Lovelace site:linkedin.com"


def test_looks_like_person():
    assert looks_like_person("Grace Brewster Hopper")
    assert not looks_like_person("Ada")
    assert not looks_like_person("ada lovelace")
    assert not looks_like_person("One Two Three Four Five Six")


def test_platform_strategies():
    assert "windows_specific" in _names("powershell script problem")
    assert "linux_specific" in _names("bash loop problem")


def test_first_matching_error_pattern_wins():
    pattern = detect_error_pattern("blue screen after connection refused")
    assert pattern is not None
    assert pattern.error_type == "windows_bsod"
    assert detect_error_pattern("nothing wrong here") is None


def test_determine_search_type():
    assert determine_search_type("error_memory_error", "x") == SearchType.ERROR_LOOKUP
    assert determine_search_type("documentation", "x") == SearchType.DOCUMENTATION
    assert determine_search_type("community", "x") == SearchType.FORUM_DISCUSSION
    assert determine_search_type("windows_specific", "x") == SearchType.WINDOWS_SPECIFIC
    assert determine_search_type("linux_specific", "x") == SearchType.LINUX_SPECIFIC
    assert determine_search_type("people_profile", "x") == SearchType.PEOPLE_PROFILE
    assert determine_search_type("general", "how to fix it") == SearchType.TECHNICAL
    assert determine_search_type("general", "tulips") == SearchType.GENERAL
