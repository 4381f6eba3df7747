# ezirisk/forms/base.py
"""
Declarative form definitions. A FormSpec lists the fields a module stores in
its `data` jsonb column and carries the rule table used to suggest an outcome.
"""
from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from jsonschema import Draft7Validator

from ezirisk.schemas.contracts import STANDARD_OUTCOMES, Suggestion

FIELD_KINDS = ("text", "textarea", "select", "multiselect", "number", "rows", "flag", "group")

YES_NO = ["unknown", "yes", "no"]
YES_NO_NA = ["unknown", "yes", "no", "na"]


@dataclass
class FieldSpec:
    key: str
    label: str
    kind: str = "text"
    options: List[str] = field(default_factory=list)   # select / multiselect choices, group members
    default: Any = None
    columns: List[str] = field(default_factory=list)   # rows only
    choices: List[str] = field(default_factory=list)   # group members answered from a fixed list
    option_labels: Dict[str, str] = field(default_factory=dict)
    help: str = ""
    document_field: bool = False                       # also persisted on the documents row

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind: {self.kind}")

    def label_for(self, option: str) -> str:
        return self.option_labels.get(option) or option.replace("_", " ").capitalize()

    def default_value(self) -> Any:
        if self.default is not None:
            return deepcopy(self.default)
        if self.kind in ("multiselect", "rows"):
            return []
        if self.kind == "flag":
            return False
        if self.kind == "group":
            return {opt: (self.choices[-1] if self.choices else False) for opt in self.options}
        if self.kind == "select":
            return self.options[0] if self.options else ""
        return ""

    def schema(self) -> Dict[str, Any]:
        if self.kind == "select":
            return {"enum": list(self.options) + ([] if "" in self.options else [""])}
        if self.kind == "multiselect":
            return {"type": "array", "items": {"enum": list(self.options)}}
        if self.kind == "rows":
            cols = {c: {"type": ["string", "number", "boolean", "null"]} for c in self.columns}
            return {"type": "array", "items": {"type": "object", "properties": cols}}
        if self.kind == "flag":
            return {"type": "boolean"}
        if self.kind == "group":
            member = {"enum": list(self.choices)} if self.choices else {"type": "boolean"}
            return {"type": "object", "properties": {o: member for o in self.options}}
        if self.kind == "number":
            # blank means "not entered yet"
            return {"anyOf": [{"type": "number"}, {"enum": ["", None]}]}
        return {"type": ["string", "null"]}


SuggestFn = Callable[[Dict[str, Any]], Optional[Suggestion]]
# derived forms read other rows: (store, instance, data) -> ...
DeriveFn = Callable[[Any, Dict[str, Any], Dict[str, Any]], Optional[Suggestion]]
PrepareFn = Callable[[Any, Dict[str, Any], Dict[str, Any]], Dict[str, Any]]


@dataclass
class FormSpec:
    module_key: str
    title: str
    fields: List[FieldSpec] = field(default_factory=list)
    suggest: Optional[SuggestFn] = None
    outcomes: List[str] = field(default_factory=lambda: list(STANDARD_OUTCOMES))
    derive: Optional[DeriveFn] = None
    prepare_save: Optional[PrepareFn] = None

    @property
    def derived(self) -> bool:
        return self.derive is not None

    def get_field(self, key: str) -> Optional[FieldSpec]:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    @property
    def document_fields(self) -> List[str]:
        return [f.key for f in self.fields if f.document_field]

    def default_data(self) -> Dict[str, Any]:
        return {f.key: f.default_value() for f in self.fields}

    def hydrate(self, saved: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Saved values over defaults; dict groups merged one level deep, unknown keys kept."""
        data = self.default_data()
        for k, v in (saved or {}).items():
            if isinstance(v, dict) and isinstance(data.get(k), dict):
                data[k] = {**data[k], **v}
            elif v is not None:
                data[k] = v
        return data

    def json_schema(self) -> Dict[str, Any]:
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "title": self.title,
            "type": "object",
            "properties": {f.key: f.schema() for f in self.fields},
        }

    def validate(self, data: Dict[str, Any]) -> List[str]:
        validator = Draft7Validator(self.json_schema())
        return [f"{'.'.join([str(p) for p in e.path]) or '$'}: {e.message}"
                for e in validator.iter_errors(data or {})]

    def suggest_outcome(self, data: Dict[str, Any]) -> Optional[Suggestion]:
        if self.suggest is None:
            return None
        return self.suggest(self.hydrate(data))


# --- rule helpers -------------------------------------------------------------

def text(v: Any) -> str:
    return str(v if v is not None else "").strip()


def is_short(v: Any, min_len: int) -> bool:
    return len(text(v)) < min_len


def blank_or_unknown(v: Any) -> bool:
    t = text(v)
    return not t or t.lower() == "unknown"


def count_unknown(data: Dict[str, Any], keys: Iterable[str]) -> int:
    return sum(1 for k in keys if data.get(k) == "unknown")


def count_unknown_except(data: Dict[str, Any], skip: Iterable[str]) -> int:
    """Counts 'unknown' answers over every key whose name contains none of `skip`."""
    skip = list(skip)
    return sum(1 for k, v in data.items()
               if v == "unknown" and not any(s in k for s in skip))


def plural(n: int, word: str = "", suffix: str = "s") -> str:
    return word + (suffix if n != 1 else "")
