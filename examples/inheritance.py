"""Compute values based on the results of parent nodes.

parent_value feeds both children, and root combines the children. Asking
for root evaluates parent_value only once.
"""

from typing import Any

from fimbul import Fimbul

fimbul = Fimbul()


@fimbul.node()
def parent_value(params: dict[str, Any], deps: dict[str, Any]) -> float:
    """Product of the first two parameters."""
    return params["param1"] * params["param2"]


@fimbul.node(depends=["parent_value"])
def child1(params: dict[str, Any], deps: dict[str, Any]) -> float:
    """Twice the parent value minus param1."""
    return deps["parent_value"] * 2 - params["param1"]


@fimbul.node(depends=["parent_value"])
def child2(params: dict[str, Any], deps: dict[str, Any]) -> float:
    """Half the parent value plus param2."""
    return deps["parent_value"] / 2 + params["param2"]


@fimbul.node(depends=["child1", "child2"])
def root(params: dict[str, Any], deps: dict[str, Any]) -> float:
    """Product of the children plus param3."""
    return deps["child1"] * deps["child2"] + params["param3"]


if __name__ == "__main__":
    value = fimbul.get("root", {"param1": 4, "param2": 2, "param3": -30})
    print(f"The meaning of life, the universe, and everything is {value}")
