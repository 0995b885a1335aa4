from pathlib import Path

import pytest

from fakes import ReplySink
from kira.memory import HistoryStore


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "chat_history.json"


@pytest.fixture
def history(history_path: Path) -> HistoryStore:
    return HistoryStore(history_path)


@pytest.fixture
def sink() -> ReplySink:
    return ReplySink()
