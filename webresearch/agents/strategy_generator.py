from __future__ import annotations

import re
from dataclasses import dataclass

from webresearch.models.research import SearchStrategy, SearchType


@dataclass(frozen=True, slots=True)
class TechnicalErrorPattern:
    error_type: str
    patterns: tuple[re.Pattern[str], ...]
    search_queries: tuple[str, ...]
    common_sources: tuple[str, ...]
    urgency: str
    platform: str


def _patterns(*raw: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in raw)


# First matching entry wins, so more specific signatures come first.
TECHNICAL_ERROR_PATTERNS: tuple[TechnicalErrorPattern, ...] = (
    TechnicalErrorPattern(
        error_type="windows_bsod",
        patterns=_patterns(r"blue screen", r"\bbsod\b", r"stop error", r"0x[0-9a-f]{8}"),
        search_queries=("windows blue screen fix", "BSOD troubleshooting", "windows stop error"),
        common_sources=("support.microsoft.com", "answers.microsoft.com", "superuser.com"),
        urgency="critical",
        platform="windows",
    ),
    TechnicalErrorPattern(
        error_type="windows_service_failed",
        patterns=_patterns(r"service failed", r"windows service", r"service not responding"),
        search_queries=("windows service failed fix", "restart windows service", "service troubleshooting"),
        common_sources=("support.microsoft.com", "serverfault.com", "superuser.com"),
        urgency="high",
        platform="windows",
    ),
    TechnicalErrorPattern(
        error_type="windows_registry_error",
        patterns=_patterns(r"registry error", r"regedit", r"registry key"),
        search_queries=("windows registry error fix", "registry repair", "regedit troubleshooting"),
        common_sources=("support.microsoft.com", "technet.microsoft.com", "superuser.com"),
        urgency="high",
        platform="windows",
    ),
    TechnicalErrorPattern(
        error_type="linux_command_not_found",
        patterns=_patterns(r"command not found", r"no such file or directory"),
        search_queries=("install {command} linux", "{command} package ubuntu debian"),
        common_sources=("askubuntu.com", "packages.ubuntu.com"),
        urgency="medium",
        platform="linux",
    ),
    TechnicalErrorPattern(
        error_type="linux_permission_denied",
        patterns=_patterns(r"permission denied", r"access denied"),
        search_queries=("permission denied linux fix", "chmod chown linux"),
        common_sources=("unix.stackexchange.com", "askubuntu.com"),
        urgency="high",
        platform="linux",
    ),
    TechnicalErrorPattern(
        error_type="network_connection_failed",
        patterns=_patterns(r"connection failed", r"network unreachable", r"timeout", r"connection refused"),
        search_queries=("network connection failed fix", "internet connectivity troubleshooting"),
        common_sources=("stackoverflow.com", "superuser.com", "serverfault.com"),
        urgency="high",
        platform="cross-platform",
    ),
    TechnicalErrorPattern(
        error_type="application_crash",
        patterns=_patterns(r"application crashed", r"segmentation fault", r"access violation"),
        search_queries=("application crash troubleshooting", "program stopped working fix"),
        common_sources=("stackoverflow.com", "github.com", "superuser.com"),
        urgency="medium",
        platform="cross-platform",
    ),
    TechnicalErrorPattern(
        error_type="memory_error",
        patterns=_patterns(r"out of memory", r"memory leak", r"heap corruption"),
        search_queries=("memory error troubleshooting", "out of memory fix"),
        common_sources=("stackoverflow.com", "serverfault.com"),
        urgency="high",
        platform="cross-platform",
    ),
)

_PERSON_WORD = re.compile(r"^[A-Z][a-z]+$")
_TECH_KEYWORDS = re.compile(
    r"\b(error|fix|install|configure|setup|troubleshoot|debug|issue|problem)\b", re.IGNORECASE
)
_TECH_PLATFORMS = re.compile(
    r"\b(windows|linux|macos|ubuntu|debian|server|database|code|programming)\b", re.IGNORECASE
)
_WINDOWS = re.compile(r"\b(windows|microsoft|win10|win11|powershell|cmd|registry|bsod)\b", re.IGNORECASE)
_LINUX = re.compile(r"\b(linux|ubuntu|debian|bash|shell|terminal|unix)\b", re.IGNORECASE)
_TECHNICAL_SEARCH = re.compile(r"\b(error|fix|install|troubleshoot|debug)\b", re.IGNORECASE)


def bare_query(query: str) -> str:
    return re.sub(r"[\"']", "", query).strip()


def detect_error_pattern(query: str) -> TechnicalErrorPattern | None:
    for pattern in TECHNICAL_ERROR_PATTERNS:
        if any(regex.search(query) for regex in pattern.patterns):
            return pattern
    return None


def looks_like_person(query: str) -> bool:
    """2-5 capitalized words, e.g. "Ada Lovelace"."""
    words = bare_query(query).split()
    return 2 <= len(words) <= 5 and all(_PERSON_WORD.match(word) for word in words)


def looks_like_technical(query: str) -> bool:
    return bool(_TECH_KEYWORDS.search(query) or _TECH_PLATFORMS.search(query))


def looks_like_windows(query: str) -> bool:
    return bool(_WINDOWS.search(query))


def looks_like_linux(query: str) -> bool:
    return bool(_LINUX.search(query))


def _general_follow_ups(query: str, *, person: bool, technical: bool) -> tuple[str, ...]:
    q = bare_query(query)
    if person:
        return (
            f'"{q}"',
            f"{q} linkedin profile",
            f"{q} biography",
            f"{q} professional background",
            f"{q} career achievements",
        )
    if technical:
        return (
            f'"{q}"',
            f"{q} solution guide",
            f"{q} troubleshooting steps",
            f"{q} how to fix",
        )
    return (
        f'"{q}"',
        f"{q} overview",
        f"{q} explanation",
        f"{q} guide",
    )


def generate_search_strategies(query: str) -> list[SearchStrategy]:
    """Plan the search angles for a query, highest-value first."""
    strategies: list[SearchStrategy] = []
    q = bare_query(query)
    person = looks_like_person(query)
    technical = looks_like_technical(query)

    detected = detect_error_pattern(query)
    if detected is not None:
        strategies.append(
            SearchStrategy(
                name=f"error_{detected.error_type}",
                description=f"Search for {detected.error_type} solutions",
                query_templates=tuple(t.replace("{command}", query) for t in detected.search_queries),
                max_results=10,
                content_extraction=True,
            )
        )

    strategies.append(
        SearchStrategy(
            name="general",
            description="General comprehensive search",
            query_templates=(query,),
            follow_up_queries=_general_follow_ups(query, person=person, technical=technical),
            max_results=12,
            content_extraction=True,
        )
    )

    if looks_like_windows(query):
        strategies.append(
            SearchStrategy(
                name="windows_specific",
                description="Windows-focused technical search",
                query_templates=(
                    f"{query} windows",
                    f"{query} microsoft support",
                    f"{query} windows 10 11",
                ),
                follow_up_queries=(
                    f"{query} powershell solution",
                    f"{query} registry fix",
                    f"{query} windows troubleshooting",
                ),
                max_results=8,
            )
        )

    if looks_like_linux(query):
        strategies.append(
            SearchStrategy(
                name="linux_specific",
                description="Linux-focused technical search",
                query_templates=(
                    f"{query} linux",
                    f"{query} ubuntu debian",
                    f"{query} command line",
                ),
                follow_up_queries=(
                    f"{query} bash script",
                    f"{query} terminal solution",
                    f"{query} unix fix",
                ),
                max_results=8,
            )
        )

    if technical:
        strategies.append(
            SearchStrategy(
                name="documentation",
                description="Official documentation and guides",
                query_templates=(
                    f"{query} documentation",
                    f"{query} official guide",
                    f"{query} manual",
                ),
                follow_up_queries=(
                    f"{query} tutorial",
                    f"{query} examples",
                    f"{query} best practices",
                ),
                max_results=6,
            )
        )
        strategies.append(
            SearchStrategy(
                name="community",
                description="Community forums and discussions",
                query_templates=(
                    f"{query} stackoverflow",
                    f"{query} reddit",
                    f"{query} forum discussion",
                ),
                follow_up_queries=(
                    f"{query} community solution",
                    f"{query} user experiences",
                ),
                max_results=6,
            )
        )

    if person:
        strategies.append(
            SearchStrategy(
                name="people_profile",
                description="People and professional profiles",
                query_templates=(
                    f"{q} site:linkedin.com",
                    f"{q} biography professional",
                    f"{q} career background",
                    f"{q} achievements",
                ),
                follow_up_queries=(
                    f"{q} education",
                    f"{q} work experience",
                    f"{q} publications",
                    f"{q} awards",
                ),
                max_results=8,
            )
        )

    return strategies


def determine_search_type(strategy_name: str, query: str) -> SearchType:
    if strategy_name.startswith("error_"):
        return SearchType.ERROR_LOOKUP
    if "documentation" in strategy_name:
        return SearchType.DOCUMENTATION
    if "forum" in strategy_name or "community" in strategy_name:
        return SearchType.FORUM_DISCUSSION
    if "windows" in strategy_name:
        return SearchType.WINDOWS_SPECIFIC
    if "linux" in strategy_name:
        return SearchType.LINUX_SPECIFIC
    if "people" in strategy_name:
        return SearchType.PEOPLE_PROFILE
    if _TECHNICAL_SEARCH.search(query):
        return SearchType.TECHNICAL
    return SearchType.GENERAL
