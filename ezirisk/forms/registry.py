# ezirisk/forms/registry.py
from typing import Dict

from ezirisk.forms.base import FieldSpec, FormSpec
from ezirisk.forms import core_modules, fra_modules, fsd_modules, dsear_modules, re_modules

FORM_REGISTRY: Dict[str, FormSpec] = {
    f.module_key: f
    for group in (core_modules.FORMS, fra_modules.FORMS, fsd_modules.FORMS, dsear_modules.FORMS, re_modules.FORMS)
    for f in group
}


def generic_form(module_key: str) -> FormSpec:
    """Notes-only form for modules without a bespoke layout."""
    return FormSpec(
        module_key=module_key,
        title=module_key,
        fields=[FieldSpec("notes", "Notes", "textarea")],
    )


def get_form(module_key: str) -> FormSpec:
    return FORM_REGISTRY.get(module_key) or generic_form(module_key)


def has_form(module_key: str) -> bool:
    return module_key in FORM_REGISTRY
