"""txgc runtime - evaluation of compiled expressions."""

from .evaluator import EvaluationError, Evaluator, evaluate

__all__ = ['EvaluationError', 'Evaluator', 'evaluate']
