import json

import pytest

from codex_relay.models_catalog import PlanCatalog, plan_key_for


def model(model_id, **extra):
    entry = {
        "id": model_id,
        "object": "model",
        "created": 1754524800,
        "owned_by": "openai",
        "display_name": model_id.upper(),
        "context_length": 400000,
    }
    entry.update(extra)
    return entry


CATALOG = {
    "codex-free": [model("gpt-5.5"), model("gpt-5-codex-mini")],
    "codex-team": [model("gpt-5.5"), model("gpt-5-codex")],
    "codex-plus": [
        model("gpt-5.5"),
        model("gpt-5-codex"),
        model("codex-auto-review"),
        model("gpt-5.3-codex-spark"),
    ],
    "codex-pro": [
        model("gpt-5-codex"),
        model("gpt-5.5"),
        model("codex-auto-review"),
        model("gpt-5.3-codex-spark"),
    ],
}


@pytest.fixture
def catalog():
    return PlanCatalog.from_json(json.dumps(CATALOG))


def ids(listing):
    return [m["id"] for m in listing["data"]]


def test_catalog_loads_all_four_plans(catalog):
    assert sorted(catalog.plan_keys()) == ["codex-free", "codex-plus", "codex-pro", "codex-team"]
    for plan in ("free", "team", "plus", "pro"):
        assert catalog.union_models([plan])


def test_load_from_file(tmp_path):
    path = tmp_path / "codex_plan_models.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")
    loaded = PlanCatalog.load(path)
    assert ids(loaded.build_simple_list(["free"])) == ["gpt-5.5", "gpt-5-codex-mini"]


def test_invalid_json_raises():
    with pytest.raises(ValueError):
        PlanCatalog.from_json("{not json")


@pytest.mark.parametrize(
    "plan, key",
    [
        ("free", "codex-free"),
        ("Plus", "codex-plus"),
        ("PRO", "codex-pro"),
        ("team", "codex-team"),
        ("business", "codex-team"),
        ("go", "codex-team"),
        (" free ", "codex-free"),
        ("enterprise", "codex-pro"),
        ("", "codex-pro"),
        (None, "codex-pro"),
    ],
)
def test_plan_key_mapping(plan, key):
    assert plan_key_for(plan) == key


def test_simple_list_has_required_keys(catalog):
    v = catalog.build_simple_list(["pro"])
    assert v["object"] == "list"
    assert v["data"]
    for m in v["data"]:
        assert isinstance(m["id"], str) and m["id"]
        assert m["object"] == "model"
        assert isinstance(m["created"], int)
        assert isinstance(m["owned_by"], str) and m["owned_by"]
        assert set(m) == {"id", "object", "created", "owned_by"}


def test_plus_and_pro_both_include_codex_auto_review(catalog):
    pro_ids = set(ids(catalog.build_simple_list(["pro"])))
    plus_ids = set(ids(catalog.build_simple_list(["plus"])))
    free_ids = set(ids(catalog.build_simple_list(["free"])))
    assert "codex-auto-review" in plus_ids
    assert "codex-auto-review" in pro_ids
    assert "gpt-5.3-codex-spark" in plus_ids
    assert "gpt-5.3-codex-spark" in pro_ids
    assert "gpt-5.3-codex-spark" not in free_ids


def test_union_dedupes_across_plans(catalog):
    merged = ids(catalog.build_simple_list(["free", "plus"]))
    assert merged.count("gpt-5.5") == 1
    assert merged == [
        "gpt-5.5",
        "gpt-5-codex-mini",
        "gpt-5-codex",
        "codex-auto-review",
        "gpt-5.3-codex-spark",
    ]


def test_empty_plans_returns_empty_list(catalog):
    assert catalog.build_simple_list([])["data"] == []


def test_unknown_plan_uses_pro(catalog):
    assert ids(catalog.build_simple_list(["enterprise"])) == ids(
        catalog.build_simple_list(["pro"])
    )


def test_codex_client_returns_full_metadata(catalog):
    arr = catalog.build_codex_client_response(["pro"])["models"]
    assert arr
    assert arr[0]["display_name"] == "GPT-5-CODEX"
    assert arr[0]["context_length"] == 400000


def test_defaults_for_missing_fields_and_entries_without_id():
    cat = PlanCatalog.from_json(
        json.dumps({"codex-pro": [{"id": "bare"}, {"name": "no-id"}, "junk", {"id": 5}]})
    )
    assert cat.build_simple_list(["pro"])["data"] == [
        {"id": "bare", "object": "model", "created": 1_700_000_000, "owned_by": "openai"}
    ]


def test_union_returns_copies(catalog):
    first = catalog.union_models(["pro"])
    first[0]["id"] = "changed"
    assert catalog.union_models(["pro"])[0]["id"] == "gpt-5-codex"