"""Translate Activity Relationship Matrices into Declare models and BPMN process graphs."""

__version__ = "0.1.0"
