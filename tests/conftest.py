import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ensure the repository root is on the import path so tests can import collected modules.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeItem:
    """Stand-in for an Imaris Surfaces/Spots proxy."""

    def __init__(self, name, records, factor_names=("Category", "Channel", "Time"), error=None):
        self.name = name
        self.records = list(records)
        self.factor_names = list(factor_names)
        self.error = error
        self.color = None

    def GetName(self):
        return self.name

    def SetName(self, name):
        self.name = name

    def SetColorRGBA(self, color):
        self.color = color

    def GetStatistics(self):
        if self.error is not None:
            raise self.error
        columns = {
            "Category": [r.get("category", "Surface") for r in self.records],
            "Channel": [r.get("channel", "") for r in self.records],
            "Time": [r.get("time", "1") for r in self.records],
        }
        return SimpleNamespace(
            mNames=[r["name"] for r in self.records],
            mValues=[r["value"] for r in self.records],
            mIds=[r["id"] for r in self.records],
            mFactorNames=list(self.factor_names),
            mFactors=[columns.get(name, [""] * len(self.records)) for name in self.factor_names],
        )


@pytest.fixture()
def make_item():
    def factory(records, name="Nuclei", **kwargs):
        return FakeItem(name, records, **kwargs)

    return factory


@pytest.fixture()
def nuclei_records():
    return [
        {"name": "Volume", "value": 12.5, "id": 3, "category": "Surface", "channel": "1", "time": "0"},
        {"name": "Volume", "value": 12.5, "id": 3, "category": "Surface", "channel": "2", "time": "0"},
        {"name": "Sphericity", "value": 0.91, "id": 3, "category": "Surface", "channel": "", "time": "0"},
    ]
