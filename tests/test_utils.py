import pytest

from src.utils.config import load_config, load_settings
from src.utils.images import thumbnail_url_for
from src.utils.text_cleaning import clean_query


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        ("", ""),
        ("   \n\t ", ""),
        ("  chocolate   birthday \n cake ", "chocolate birthday cake"),
        ("salt &amp; caramel", "salt & caramel"),
        ("red\x00velvet", "redvelvet"),
    ],
)
def test_clean_query(raw, expected):
    assert clean_query(raw) == expected


def test_thumbnail_for_cloudinary_url():
    url = "https://res.cloudinary.com/demo/image/upload/v17/cakes/a.jpg"
    assert thumbnail_url_for(url) == (
        "https://res.cloudinary.com/demo/image/upload/w_400,h_400,c_fill,g_auto,q_60,f_auto/v17/cakes/a.jpg"
    )


def test_thumbnail_for_other_hosts_is_original():
    assert thumbnail_url_for("https://example.com/a.jpg") == "https://example.com/a.jpg"


def test_stored_thumbnail_is_preferred():
    assert thumbnail_url_for("https://example.com/a.jpg", "https://example.com/t.jpg") == "https://example.com/t.jpg"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("search: [unclosed", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_load_settings_applies_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(
        "embedding_model:\n  provider: clip_space\n  base_url: https://default.example\n"
        "catalog:\n  backend: supabase\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CLIP_API_URL", "https://clip.example")
    monkeypatch.setenv("CATALOG_BACKEND", "Milvus")

    cfg = load_settings(path)

    assert cfg["embedding_model"]["base_url"] == "https://clip.example"
    assert cfg["catalog"]["backend"] == "milvus"
    assert cfg["search"] == {}


def test_packaged_config_has_search_defaults(monkeypatch):
    monkeypatch.delenv("CLIP_API_URL", raising=False)
    monkeypatch.delenv("CATALOG_BACKEND", raising=False)

    cfg = load_settings()

    assert cfg["embedding_model"]["provider"] == "clip_space"
    assert cfg["search"]["limit"] == 20
    assert cfg["search"]["fallback_min_similarity"] == 0.15
    assert cfg["search"]["match_threshold"] == 0.0
