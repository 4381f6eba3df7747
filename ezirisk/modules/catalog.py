# ezirisk/modules/catalog.py
"""Module keys, display names/codes and sidebar grouping."""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ModuleDefinition:
    name: str
    doc_types: tuple
    order: int


def _m(name: str, doc_types, order: int) -> ModuleDefinition:
    return ModuleDefinition(name, tuple(doc_types), order)


_ALL_CORE = ("FRA", "FSD", "DSEAR")

MODULE_CATALOG: Dict[str, ModuleDefinition] = {
    "A1_DOC_CONTROL": _m("A1 - Document Control & Governance", _ALL_CORE, 1),
    "A2_BUILDING_PROFILE": _m("A2 - Building Profile", _ALL_CORE, 2),
    "A3_PERSONS_AT_RISK": _m("A3 - Occupancy & Persons at Risk", _ALL_CORE, 3),
    "A4_MANAGEMENT_CONTROLS": _m("A4 - Management Systems", ["FRA"], 4),
    "A5_EMERGENCY_ARRANGEMENTS": _m("A5 - Emergency Arrangements", ["FRA"], 5),
    "A7_REVIEW_ASSURANCE": _m("A7 - Review & Assurance", ["FRA"], 7),
    "FRA_1_HAZARDS": _m("FRA-1 - Hazards & Ignition Sources", ["FRA"], 10),
    "FRA_2_ESCAPE_ASIS": _m("FRA-2 - Means of Escape (As-Is)", ["FRA"], 11),
    "FRA_3_PROTECTION_ASIS": _m("FRA-3 - Fire Protection (As-Is)", ["FRA"], 12),
    "FRA_5_EXTERNAL_FIRE_SPREAD": _m("FRA-5 - External Fire Spread", ["FRA"], 13),
    "FRA_4_SIGNIFICANT_FINDINGS": _m("FRA-4 - Significant Findings (Summary)", ["FRA"], 14),
    "FSD_1_REG_BASIS": _m("FSD-1 - Regulatory Basis", ["FSD"], 20),
    "FSD_2_EVAC_STRATEGY": _m("FSD-2 - Evacuation Strategy", ["FSD"], 21),
    "FSD_3_ESCAPE_DESIGN": _m("FSD-3 - Escape Design", ["FSD"], 22),
    "FSD_4_PASSIVE_PROTECTION": _m("FSD-4 - Passive Fire Protection", ["FSD"], 23),
    "FSD_5_ACTIVE_SYSTEMS": _m("FSD-5 - Active Fire Systems", ["FSD"], 24),
    "FSD_6_FRS_ACCESS": _m("FSD-6 - Fire & Rescue Service Access", ["FSD"], 25),
    "FSD_7_DRAWINGS": _m("FSD-7 - Drawings & Schedules", ["FSD"], 26),
    "FSD_8_SMOKE_CONTROL": _m("FSD-8 - Smoke Control", ["FSD"], 27),
    "FSD_9_CONSTRUCTION_PHASE": _m("FSD-9 - Construction Phase", ["FSD"], 28),
    "DSEAR_1_DANGEROUS_SUBSTANCES": _m("DSEAR-1 - Dangerous Substances Register", ["DSEAR"], 30),
    "DSEAR_2_PROCESS_RELEASES": _m("DSEAR-2 - Process & Release Assessment", ["DSEAR"], 31),
    "DSEAR_3_HAZARDOUS_AREA_CLASSIFICATION": _m("DSEAR-3 - Hazardous Area Classification", ["DSEAR"], 32),
    "DSEAR_4_IGNITION_SOURCES": _m("DSEAR-4 - Ignition Source Control", ["DSEAR"], 33),
    "DSEAR_5_EXPLOSION_PROTECTION": _m("DSEAR-5 - Explosion Protection & Mitigation", ["DSEAR"], 34),
    "DSEAR_6_RISK_ASSESSMENT": _m("DSEAR-6 - Risk Assessment Table", ["DSEAR"], 35),
    "DSEAR_10_HIERARCHY_OF_CONTROL": _m("DSEAR-10 - Hierarchy of Control", ["DSEAR"], 36),
    "DSEAR_11_EXPLOSION_EMERGENCY_RESPONSE": _m("DSEAR-11 - Explosion Emergency Response", ["DSEAR"], 37),
    "RE_02_CONSTRUCTION": _m("RE-02 - Construction", ["RE"], 40),
    "RE_06_FIRE_PROTECTION": _m("RE-06 - Fire Protection", ["RE"], 41),
    "RE_09_MANAGEMENT": _m("RE-09 - Management Systems", ["RE"], 42),
    "RE_13_RECOMMENDATIONS": _m("RE-13 - Recommendations", ["RE"], 43),
}

UNKNOWN_ORDER = 999

CORE_MODULE_KEYS = {"A1_DOC_CONTROL", "A2_BUILDING_PROFILE", "A3_PERSONS_AT_RISK", "A7_REVIEW_ASSURANCE"}
FRA_ADDITIONAL_A_KEYS = {"A4_MANAGEMENT_CONTROLS", "A5_EMERGENCY_ARRANGEMENTS"}

FRA_PREMIUM_ORDER = [
    "FRA_1_HAZARDS",
    "FRA_2_ESCAPE_ASIS",
    "FRA_3_ACTIVE_SYSTEMS",
    "FRA_4_PASSIVE_PROTECTION",
    "FRA_8_FIREFIGHTING_EQUIPMENT",
    "FRA_5_EXTERNAL_FIRE_SPREAD",
    "FRA_6_MANAGEMENT_SYSTEMS",
    "FRA_7_EMERGENCY_ARRANGEMENTS",
    "FRA_90_SIGNIFICANT_FINDINGS",
]
_SPLIT_PROTECTION_KEYS = {"FRA_3_ACTIVE_SYSTEMS", "FRA_4_PASSIVE_PROTECTION", "FRA_8_FIREFIGHTING_EQUIPMENT"}

# report badges differ from the stored key numbering
RE_BADGE_OVERRIDE = {
    "RE_06_FIRE_PROTECTION": "RE-04",
    "RE_07_NATURAL_HAZARDS": "RE-05",
    "RE_08_UTILITIES": "RE-06",
    "RE_09_MANAGEMENT": "RE-07",
    "RE_12_LOSS_VALUES": "RE-08",
    "RE_13_RECOMMENDATIONS": "RE-09",
    "RE_10_SITE_PHOTOS": "RE-10",
}

_CODE_PREFIX = re.compile(r"^([A-Z]+-\d+|A\d+|RE-\d+)\s*[–-]\s*")
_AS_IS = re.compile(r"\(As-Is\)", re.IGNORECASE)


def get_module_name(module_key: str) -> str:
    entry = MODULE_CATALOG.get(module_key)
    return entry.name if entry else module_key


def get_module_order(module_key: str) -> int:
    entry = MODULE_CATALOG.get(module_key)
    return entry.order if entry else UNKNOWN_ORDER


def sort_modules_by_order(instances: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(instances, key=lambda m: get_module_order(m["module_key"]))


def get_module_code(module_key: str) -> str:
    if module_key == "RISK_ENGINEERING":
        return "RE-00"
    if module_key in RE_BADGE_OVERRIDE:
        return RE_BADGE_OVERRIDE[module_key]
    return re.sub(r"[–-]$", "", get_module_name(module_key).split(" ")[0])


def get_module_display_name(module_key: str) -> str:
    name = _CODE_PREFIX.sub("", get_module_name(module_key))
    name = _AS_IS.sub("", name)
    name = re.sub(r"\s{2,}", " ", name).strip()
    return name[:1].upper() + name[1:]


def modules_for_doc_type(doc_type: str) -> List[str]:
    keys = [k for k, m in MODULE_CATALOG.items() if doc_type in m.doc_types]
    return sorted(keys, key=get_module_order)


# --- sidebar sections ---------------------------------------------------------

@dataclass
class ModuleSection:
    key: str
    label: str
    modules: List[Dict[str, Any]] = field(default_factory=list)


def _sort_fra(modules: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Premium order first; anything not listed keeps catalog order after it."""
    rank = {k: i for i, k in enumerate(FRA_PREMIUM_ORDER)}
    return sorted(sort_modules_by_order(modules), key=lambda m: rank.get(m["module_key"], UNKNOWN_ORDER))


def _filter_fra(modules: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    keys = {m["module_key"] for m in modules}
    if keys & _SPLIT_PROTECTION_KEYS:
        return [m for m in modules if m["module_key"] != "FRA_3_PROTECTION_ASIS"]
    return modules


def _is_re(key: str) -> bool:
    return key.startswith("RE_") or key == "RISK_ENGINEERING"


def build_module_sections(instances: List[Dict[str, Any]]) -> List[ModuleSection]:
    def keyed(pred):
        return [m for m in instances if pred(m["module_key"])]

    fra = keyed(lambda k: k.startswith("FRA_") or k in FRA_ADDITIONAL_A_KEYS)

    sections = [
        ModuleSection("core", "Core", sort_modules_by_order(keyed(lambda k: k in CORE_MODULE_KEYS))),
        ModuleSection("fra", "Fire Risk Assessment", _sort_fra(_filter_fra(fra))),
        ModuleSection("fsd", "Fire Strategy Design", sort_modules_by_order(keyed(lambda k: k.startswith("FSD_")))),
        ModuleSection("dsear", "Explosive Atmospheres",
                      sort_modules_by_order(keyed(lambda k: k.startswith("DSEAR_")))),
        ModuleSection("re", "Risk Engineering", sort_modules_by_order(keyed(_is_re))),
        ModuleSection("other", "Additional", sort_modules_by_order(keyed(
            lambda k: k not in CORE_MODULE_KEYS and k not in FRA_ADDITIONAL_A_KEYS
            and not k.startswith(("FRA_", "FSD_", "DSEAR_")) and not _is_re(k)
        ))),
    ]
    return [s for s in sections if s.modules]
