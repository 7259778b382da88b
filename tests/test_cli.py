from pathlib import Path

import pytest
from watchfiles import Change

from cststypegen.cli import CSharpSourceFilter, main


ENVIRONMENT_NAMES = (
    "CsTsTypeGen_SourceDirectory",
    "CsTsTypeGen_DefinitionsPath",
    "CsTsTypeGen_GenerateDefinitions",
    "CsTsTypeGen_TypeMapPath",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for environment_name in ENVIRONMENT_NAMES:
        monkeypatch.delenv(environment_name, raising=False)
    monkeypatch.chdir(tmp_path)


def write_model(source_dir):
    source_dir.mkdir(parents=True, exist_ok=True)
    (source_dir / "Product.cs").write_text(
        "namespace Shop\n{\n    public class Product\n    {\n        public decimal Price { get; set; }\n    }\n}\n",
        encoding="utf-8",
    )


def test_positional_arguments(tmp_path):
    write_model(tmp_path / "src")
    output_path = tmp_path / "types" / "shop.d.ts"

    assert main([str(tmp_path / "src"), str(output_path)]) == 0
    assert "price: number;" in output_path.read_text(encoding="utf-8")


def test_environment_fallbacks(tmp_path, monkeypatch):
    write_model(tmp_path / "src")
    output_path = tmp_path / "env.d.ts"
    monkeypatch.setenv("CsTsTypeGen_SourceDirectory", str(tmp_path / "src"))
    monkeypatch.setenv("CsTsTypeGen_DefinitionsPath", str(output_path))

    assert main([]) == 0
    assert output_path.exists()


def test_generation_can_be_disabled(tmp_path, monkeypatch, capsys):
    write_model(tmp_path / "src")
    monkeypatch.setenv("CsTsTypeGen_GenerateDefinitions", "FALSE")

    assert main([str(tmp_path / "src"), str(tmp_path / "out.d.ts")]) == 0
    assert not (tmp_path / "out.d.ts").exists()
    assert "disabled" in capsys.readouterr().out


def test_missing_input_directory(tmp_path, capsys):
    assert main([str(tmp_path / "nope"), str(tmp_path / "out.d.ts")]) == 1

    captured = capsys.readouterr()
    assert "input directory not found" in captured.err
    assert "usage: cststypegen" in captured.err


def test_unwritable_output_is_reported(tmp_path, capsys):
    write_model(tmp_path / "src")
    occupied_path = tmp_path / "occupied"
    occupied_path.mkdir()

    assert main([str(tmp_path / "src"), str(occupied_path)]) == 1
    assert capsys.readouterr().err.startswith("cststypegen: ")


def test_type_map_option(tmp_path):
    write_model(tmp_path / "src")
    type_map_path = tmp_path / "type_map.yaml"
    type_map_path.write_text("decimal: string\n", encoding="utf-8")
    output_path = tmp_path / "out.d.ts"

    assert main([str(tmp_path / "src"), str(output_path), "--type-map", str(type_map_path)]) == 0
    assert "price: string;" in output_path.read_text(encoding="utf-8")


def test_jobs_must_be_positive(tmp_path):
    write_model(tmp_path / "src")
    assert main([str(tmp_path / "src"), str(tmp_path / "out.d.ts"), "--jobs", "0"]) == 1


def test_missing_type_map_is_an_error(tmp_path, capsys):
    write_model(tmp_path / "src")

    exit_code = main([str(tmp_path / "src"), str(tmp_path / "out.d.ts"), "--type-map", str(tmp_path / "absent.yaml")])

    assert exit_code == 1
    assert "type map not found" in capsys.readouterr().err
    assert not (tmp_path / "out.d.ts").exists()


def test_watch_filter_only_accepts_sources_outside_build_output():
    watch_filter = CSharpSourceFilter(Path("/work/app"), frozenset({"bin", "obj"}))

    assert watch_filter(Change.modified, "/work/app/Models/User.cs")
    assert not watch_filter(Change.modified, "/work/app/bin/Debug/User.cs")
    assert not watch_filter(Change.modified, "/work/app/obj/User.cs")
    assert not watch_filter(Change.modified, "/work/app/Models/User.txt")


def test_watch_filter_ignores_build_directory_names_above_the_root():
    watch_filter = CSharpSourceFilter(Path("/srv/bin/app"), frozenset({"bin", "obj"}))

    assert watch_filter(Change.modified, "/srv/bin/app/Models/User.cs")
    assert not watch_filter(Change.modified, "/srv/bin/app/obj/Debug/User.cs")
