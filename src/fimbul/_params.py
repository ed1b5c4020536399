"""Validation of parameter bags passed to evaluators."""

from typing import Any

from pydantic import BaseModel


def coerce_params(params: Any, params_model: type[BaseModel] | None) -> Any:
    """Validate ``params`` against ``params_model`` when one is configured.

    Args:
        params: Parameters given to a top-level ``get``/``get_many`` call.
        params_model: Pydantic model describing the parameters, or None to
            pass ``params`` through untouched.

    Returns:
        ``params`` itself if no model is configured or it already is an
        instance of the model, otherwise the validated model instance.

    Raises:
        pydantic.ValidationError: If ``params`` does not satisfy the model.

    """
    if params_model is None or isinstance(params, params_model):
        return params
    return params_model.model_validate(params)
