import sys
from pathlib import Path

import pytest

# tests/ から見て 1 つ上 = プロジェクトルート
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# プロジェクトルートを sys.path の先頭に追加
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)


@pytest.fixture
def sample_table() -> list:
    """カンマ・改行・クォートを含む、区切り文字 (␟ / ␞) を含まないテーブル"""
    return [
        ["id", "name", "note"],
        ["1", "Smith, John", 'said "hi"'],
        ["2", "multi\nline", ""],
        ["3", "", "plain"],
    ]


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from backend.fastapi_app.main import app

    return TestClient(app)
