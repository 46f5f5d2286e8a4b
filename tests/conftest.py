import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def isolated_earth_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("EARTH_DATABASE_URL", "EARTH_RNG_SEED", "EARTH_CONFLICT_RETRIES", "EARTH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EARTH_STORY_STORE", str(tmp_path / "story_progress.json"))
