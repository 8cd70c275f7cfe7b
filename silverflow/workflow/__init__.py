"""Workflow execution module."""

from .conditions import ConditionEvaluator
from .dispatcher import StepDispatcher
from .runner import WorkflowRunner

__all__ = ['ConditionEvaluator', 'StepDispatcher', 'WorkflowRunner']
