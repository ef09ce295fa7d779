"""Per-plan model catalog and the model list responses built from it."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Iterable

DEFAULT_CREATED = 1_700_000_000

_PLAN_KEYS = {
    "pro": "codex-pro",
    "plus": "codex-plus",
    "team": "codex-team",
    "business": "codex-team",
    "go": "codex-team",
    "free": "codex-free",
}


def plan_key_for(plan: str | None) -> str:
    """Map an account plan name to a catalog key; unknown plans fall back to ``codex-pro``."""
    normalized = (plan or "").strip().lower()
    return _PLAN_KEYS.get(normalized, "codex-pro")


class PlanCatalog:
    """Model metadata available to each plan, keyed like ``codex-free``."""

    def __init__(self, by_plan: dict[str, list[dict[str, Any]]]) -> None:
        self._by_plan = by_plan

    @classmethod
    def from_json(cls, text) -> "PlanCatalog":
        """Parse a catalog from JSON: an object of plan key to a list of model objects."""
        parsed = json.loads(text)
        by_plan: dict[str, list[dict[str, Any]]] = {}
        if isinstance(parsed, dict):
            for plan_key, models in parsed.items():
                if isinstance(models, list):
                    by_plan[plan_key] = [m for m in models if isinstance(m, dict)]
        return cls(by_plan)

    @classmethod
    def load(cls, path) -> "PlanCatalog":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    def plan_keys(self) -> list[str]:
        return list(self._by_plan)

    def union_models(self, plans: Iterable[str]) -> list[dict[str, Any]]:
        """Models of all given plans, deduplicated by id, in first-seen order."""
        seen: set[str] = set()
        merged: list[dict[str, Any]] = []
        for plan in plans:
            for model in self._by_plan.get(plan_key_for(plan), ()):
                model_id = model.get("id")
                if not isinstance(model_id, str) or model_id in seen:
                    continue
                seen.add(model_id)
                merged.append(copy.deepcopy(model))
        return merged

    def build_simple_list(self, plans: Iterable[str]) -> dict[str, Any]:
        """OpenAI-style model list with four fields per model."""
        data = []
        for model in self.union_models(plans):
            owned_by = model.get("owned_by")
            created = model.get("created")
            data.append(
                {
                    "id": model["id"],
                    "object": "model",
                    "created": created
                    if isinstance(created, int) and not isinstance(created, bool)
                    else DEFAULT_CREATED,
                    "owned_by": owned_by if isinstance(owned_by, str) else "openai",
                }
            )
        return {"object": "list", "data": data}

    def build_codex_client_response(self, plans: Iterable[str]) -> dict[str, Any]:
        """The full catalog entries, as the codex client expects them."""
        return {"models": self.union_models(plans)}