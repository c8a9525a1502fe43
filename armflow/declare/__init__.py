"""Declare constraint model, translation and persistence hand-off."""

from armflow.declare.model import DeclareConstraint, UnaryConstraint, DeclareModel
from armflow.declare.translator import (
    CONSTRAINT_TABLE,
    DeclareTranslator,
    resolve_constraint,
    translate_to_declare,
)
from armflow.declare.store import DeclareModelStore, publish_declare_model

__all__ = [
    "DeclareConstraint",
    "UnaryConstraint",
    "DeclareModel",
    "CONSTRAINT_TABLE",
    "DeclareTranslator",
    "resolve_constraint",
    "translate_to_declare",
    "DeclareModelStore",
    "publish_declare_model",
]
