from unittest.mock import patch

from webresearch.agents import query_enhancer
from webresearch.agents.query_enhancer import enhance_query


def test_replaces_obfuscated_terms():
    assert enhance_query("w1nd0ws 3rr0r f1x") == "windows error fix"


def test_strips_repeated_punctuation_and_whitespace():
    assert enhance_query("  help   me!!!  please??  ") == "help me please"


def test_leaves_words_containing_patterns_alone():
    assert enhance_query("prefix1nst4llsuffix") == "prefix1nst4llsuffix"


def test_empty_result_falls_back_to_original():
    assert enhance_query("!!!") == "!!!"


def test_failure_returns_original():
    with patch.object(query_enhancer, "_enhance", side_effect=RuntimeError("bad")):
        assert enhance_query("l1nux setup") == "l1nux setup"
