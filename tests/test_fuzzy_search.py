"""Test fuzzy search functionality"""

import pytest
from rapidfuzz import fuzz

from dumbcli.manager import CommandManager
from dumbcli.models import Command


@pytest.fixture
def manager(storage):
    storage.save([
        Command(id=1, command="git commit -m {}", alias="gc"),
        Command(id=2, command="git status"),
        Command(id=3, command="kubectl get pods", comment="list pods"),
    ])
    return CommandManager(storage, fuzzy_threshold=70)


def test_fuzzy_search_typo(manager):
    """A typo still finds the command"""
    assert fuzz.partial_ratio("comit", "git commit -m {}") >= 70

    results = manager.find("comit", fuzzy=True)

    assert results[0].id == 1


def test_fuzzy_search_disabled_by_default(manager):
    assert manager.find("comit") == []


def test_fuzzy_search_exact_matches_first(manager):
    """Substring hits score 100 and sort ahead of fuzzy hits"""
    results = manager.find("pods", fuzzy=True)

    assert results[0].id == 3


def test_fuzzy_search_threshold(manager):
    """Completely unrelated terms stay below the threshold"""
    assert manager.find("zzzzzz", fuzzy=True) == []
