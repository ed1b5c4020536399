"""Asynchronous world generation with validated parameters.

Terrain height feeds temperature and moisture, which together select a
biome. Parameters are validated by a pydantic model, and whole tiles are
memoized by coordinate so revisiting a tile does not regenerate it.
"""

import asyncio
import math

from pydantic import BaseModel, Field

from fimbul import FimbulAsync, MemoryStorage, amemoize_get_many


class TileParams(BaseModel):
    x: int
    y: int
    seed: int = 0
    sea_level: float = Field(default=0.0, ge=-1.0, le=1.0)


world = FimbulAsync(params_model=TileParams)


@world.node()
async def height(params: TileParams, deps: dict) -> float:
    """Terrain height between -1 and 1."""
    await asyncio.sleep(0)  # stands in for reading a noise texture
    return math.sin(params.x * 0.1 + params.seed) * math.cos(params.y * 0.1 - params.seed)


@world.node(depends=["height"])
def temperature(params: TileParams, deps: dict) -> float:
    """Colder at altitude and towards the poles."""
    return 30.0 - abs(params.y) * 0.2 - max(deps["height"], 0.0) * 25.0


@world.node(depends=["height"])
def moisture(params: TileParams, deps: dict) -> float:
    """Wetter close to sea level."""
    return max(0.0, 1.0 - abs(deps["height"] - params.sea_level))


@world.node(depends=["height", "temperature", "moisture"])
def biome(params: TileParams, deps: dict) -> str:
    """Biome name picked from height, temperature and moisture."""
    if deps["height"] < params.sea_level:
        return "ocean"
    if deps["temperature"] < 5.0:
        return "tundra"
    if deps["moisture"] > 0.7:
        return "forest"
    return "desert" if deps["temperature"] > 25.0 else "grassland"


tile = amemoize_get_many(
    world.get_many,
    ["height", "temperature", "moisture", "biome"],
    ["x", "y", "seed"],
    default_params={"seed": 7},
    storage=MemoryStorage(),
)


async def main() -> None:
    for y in range(-2, 3):
        row = [await tile({"x": x * 10, "y": y * 40}) for x in range(6)]
        print(" ".join(f"{t['biome']:>9}" for t in row))


if __name__ == "__main__":
    asyncio.run(main())
