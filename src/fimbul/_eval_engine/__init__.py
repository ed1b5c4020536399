"""Evaluation engine module for fimbul.

Both evaluators share one algorithm: look the key up in the result cache,
otherwise resolve the node's dependencies in declared order against the same
cache, call the compute function and store its value.

Key types:
- Evaluator: Synchronous evaluation
- AsyncEvaluator: asyncio evaluation of sync or async compute functions
"""

from ._async import AsyncEvaluator
from ._sync import Evaluator

__all__ = ["AsyncEvaluator", "Evaluator"]
