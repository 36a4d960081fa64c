import csv
import json
from pathlib import Path
from types import SimpleNamespace

import pytest

import export_imaris_statistics
from imaris_stats import EngineQueryError, QueryConfig, export_statistics, query_items
from imaris_stats.connection import find_item, get_imaris_application, image_display_name


def _scene(*items):
    return SimpleNamespace(
        GetNumberOfChildren=lambda: len(items),
        GetChild=lambda index: items[index],
    )


def test_query_items_collects_every_item(make_item, nuclei_records) -> None:
    cells = make_item(
        [{"name": "Volume", "value": 1.0, "id": 0}, {"name": "Volume", "value": 2.0, "id": 1}],
        name="Cells",
    )
    table = query_items(
        [make_item(nuclei_records), cells],
        configure=QueryConfig(statistics=["Volume"]).apply,
        image_name="plate.ims",
    )
    assert [(row["Name"], row["ID"]) for row in table.rows()] == [("Nuclei", 3), ("Cells", 0), ("Cells", 1)]
    assert "Sphericity" not in table.headings


def test_export_statistics_writes_csv(tmp_path: Path, make_item, nuclei_records) -> None:
    csv_path = export_statistics([make_item(nuclei_records)], tmp_path / "stats.csv", image_name="sample.ims")

    with csv_path.open(newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 1
    assert rows[0]["Label"] == "sample.ims"
    assert float(rows[0]["Volume C2"]) == 12.5
    assert list(rows[0].keys())[:5] == ["Label", "Name", "ID", "Timepoint", "Category"]


def test_find_item_by_name(make_item, nuclei_records) -> None:
    nuclei = make_item(nuclei_records, name="Nuclei")
    spots = make_item(nuclei_records, name="Spots 1")
    application = SimpleNamespace(GetSurpassScene=lambda: _scene(nuclei, spots))

    assert find_item(application, "Spots 1") is spots
    with pytest.raises(KeyError):
        find_item(application, "Cells")


def test_image_display_name() -> None:
    assert image_display_name("/data/a/b.ims") == "b.ims"
    assert image_display_name(r"D:\scans\c.ims") == "c.ims"
    assert image_display_name("") == ""
    assert image_display_name(None) == ""


def test_get_application_without_imarislib(monkeypatch) -> None:
    monkeypatch.setattr("imaris_stats.connection.ImarisLib", None)
    with pytest.raises(EngineQueryError, match="ImarisLib"):
        get_imaris_application()


def test_cli_exports_selected_items(tmp_path: Path, monkeypatch, make_item, nuclei_records) -> None:
    nuclei = make_item(nuclei_records, name="Nuclei")
    application = SimpleNamespace(
        GetSurpassScene=lambda: _scene(nuclei),
        GetCurrentFileName=lambda: "/images/sample.ims",
    )
    monkeypatch.setattr(export_imaris_statistics, "get_imaris_application", lambda object_id: application)

    config_path = tmp_path / "selection.json"
    config_path.write_text(json.dumps({"statistics": ["Sphericity"]}))
    output = tmp_path / "out.csv"

    status = export_imaris_statistics.main(
        [str(output), "--items", "Nuclei", "--config", str(config_path)]
    )

    assert status == 0
    with output.open(newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert rows[0]["Label"] == "sample.ims"
    assert float(rows[0]["Sphericity"]) == pytest.approx(0.91)
    assert "Volume C1" not in rows[0]


def test_cli_reports_missing_item(tmp_path: Path, monkeypatch, capsys) -> None:
    application = SimpleNamespace(GetSurpassScene=lambda: _scene())
    monkeypatch.setattr(export_imaris_statistics, "get_imaris_application", lambda object_id: application)

    status = export_imaris_statistics.main([str(tmp_path / "out.csv"), "--items", "Nuclei"])

    assert status == 1
    assert "[error]" in capsys.readouterr().err


@pytest.mark.parametrize(
    "extra",
    [["--items", "Nuclei"], ["--config", "selection.json"]],
)
def test_cli_rejects_workflow_with_item_selection(tmp_path: Path, capsys, extra) -> None:
    with pytest.raises(SystemExit) as excinfo:
        export_imaris_statistics.parse_args(
            [str(tmp_path / "out.csv"), "--workflow", "workflow.json", *extra]
        )

    assert excinfo.value.code == 2
    assert "--workflow" in capsys.readouterr().err
