"""Homebrew formula generation from the release table."""

from choughkit.formula.render import (
    FormulaRenderError,
    FormulaRenderer,
    formula_class_name,
)

__all__ = ["FormulaRenderer", "FormulaRenderError", "formula_class_name"]
