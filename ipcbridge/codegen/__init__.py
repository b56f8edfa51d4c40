"""Code generation for the four main/renderer glue strategies."""

from .matrix import (
    TRANSFORM_MATRIX,
    CellPolicy,
    ChannelBinding,
    EditMode,
    GenerationPlan,
    Strategy,
    generate,
    policy_for,
    stub_head,
)
from .templates import TEMPLATES, render_template

__all__ = [
    "TRANSFORM_MATRIX",
    "CellPolicy",
    "ChannelBinding",
    "EditMode",
    "GenerationPlan",
    "Strategy",
    "generate",
    "policy_for",
    "stub_head",
    "TEMPLATES",
    "render_template",
]
