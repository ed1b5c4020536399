"""Hello world: two nodes, one depending on the other."""

from fimbul import Fimbul

fimbul = Fimbul()

# Nodes without dependencies only see the parameters
fimbul.define("multiply", lambda params, _: params["a"] * params["b"])

# Dependency values arrive in the second argument, keyed by node
fimbul.define("other_value", lambda _, deps: deps["multiply"] * 42, ["multiply"])


if __name__ == "__main__":
    print("multiply", fimbul.get("multiply", {"a": 10, "b": 2}))
    print(fimbul.get_many(["multiply", "other_value"], {"a": 4, "b": 20}))
