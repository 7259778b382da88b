import pytest

from cststypegen.config import GeneratorConfig, Settings, build_config, load_type_mapping
from cststypegen.errors import CsTsTypeGenError


def test_named_type_map_must_exist(tmp_path):
    with pytest.raises(CsTsTypeGenError, match="type map not found"):
        load_type_mapping(tmp_path / "absent.yaml")
    with pytest.raises(CsTsTypeGenError):
        build_config(tmp_path / "absent.yaml")


def test_no_type_map_means_default_tables():
    assert build_config(None).scalar_type_map == GeneratorConfig().scalar_type_map


def test_type_map_lines(tmp_path):
    type_map_path = tmp_path / "type_map.yaml"
    type_map_path.write_text(
        "# overrides\n"
        "\n"
        "decimal: string\n"
        "Lazy<T>: {T}\n"
        "KeyValuePair<K, V>: [{K}, {V}]\n"
        "Checker<T>: (value: {T}) => boolean\n",
        encoding="utf-8",
    )

    scalar_mapping, generic_mapping = load_type_mapping(type_map_path)
    assert scalar_mapping == {"decimal": "string"}
    assert generic_mapping == {
        "Lazy": (["T"], "{T}"),
        "KeyValuePair": (["K", "V"], "[{K}, {V}]"),
        "Checker": (["T"], "(value: {T}) => boolean"),
    }


def test_malformed_lines_name_their_line_number(tmp_path):
    type_map_path = tmp_path / "type_map.yaml"

    type_map_path.write_text("decimal: string\nnot a mapping\n", encoding="utf-8")
    with pytest.raises(CsTsTypeGenError, match=r"type_map\.yaml:2:"):
        load_type_mapping(type_map_path)

    type_map_path.write_text("Pair<K, >: [{K}]\n", encoding="utf-8")
    with pytest.raises(CsTsTypeGenError, match=r"type_map\.yaml:1: empty type parameter"):
        load_type_mapping(type_map_path)

    type_map_path.write_text("decimal:\n", encoding="utf-8")
    with pytest.raises(CsTsTypeGenError, match=r"type_map\.yaml:1:"):
        load_type_mapping(type_map_path)


def test_overrides_extend_the_default_table(tmp_path):
    type_map_path = tmp_path / "type_map.yaml"
    type_map_path.write_text("decimal: string\nMoney: number\n", encoding="utf-8")

    config = build_config(type_map_path)
    assert config.scalar_type_map["decimal"] == "string"
    assert config.scalar_type_map["Money"] == "number"
    assert config.scalar_type_map["int"] == "number"


def test_settings_read_the_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CsTsTypeGen_SourceDirectory", "/src/app")
    monkeypatch.setenv("CsTsTypeGen_GenerateDefinitions", "true")

    settings = Settings()
    assert settings.source_directory == "/src/app"
    assert settings.generation_enabled


def test_generation_flag_is_case_insensitive(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CsTsTypeGen_GenerateDefinitions", raising=False)
    assert Settings().generation_enabled

    monkeypatch.setenv("CsTsTypeGen_GenerateDefinitions", "False")
    assert not Settings().generation_enabled
