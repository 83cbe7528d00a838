"""
GlitchCam — Effects Registry
Provides a uniform interface over the per-frame effects.
Every effect is a function: (frame: np.ndarray, **params) -> np.ndarray
"""

from effects.destruction import stream_glitch, raw_replace

# name -> function, category, default params, description
EFFECTS = {
    "streamglitch": {
        "fn": stream_glitch,
        "category": "destruction",
        "params": {
            "source": "a",
            "dest": "b",
            "mode": "jpeg",
            "header_protection": True,
            "active": True,
            "policy": "race",
        },
        "description": "Find/replace bytes inside the JPEG/PNG/WEBP/BMP stream, rebuild from the wreckage",
    },
    "rawreplace": {
        "fn": raw_replace,
        "category": "destruction",
        "params": {"source": "a", "dest": "b"},
        "description": "Find/replace bytes directly in the RGBA pixel data",
    },
}


def get_effect(name: str):
    """Look up a registered effect, returning its function and a copy of its defaults."""
    try:
        entry = EFFECTS[name]
    except KeyError:
        raise ValueError(
            f"No effect named '{name}' (registered: {', '.join(EFFECTS)})"
        ) from None
    return entry["fn"], dict(entry["params"])


def list_effects(category: str = None) -> list[dict]:
    """Registry entries as plain dicts, optionally limited to one ``category``."""
    return [
        {"name": name, "category": entry["category"],
         "description": entry["description"], "params": dict(entry["params"])}
        for name, entry in EFFECTS.items()
        if category is None or entry["category"] == category
    ]


def apply_effect(frame, effect_name: str, **params):
    """Apply a single effect with defaults filled in.

    Raises ValueError for unknown effects or parameters.
    """
    fn, defaults = get_effect(effect_name)
    unknown = set(params) - set(defaults)
    if unknown:
        raise ValueError(
            f"Unknown params for {effect_name}: {', '.join(sorted(unknown))}. "
            f"Accepted: {', '.join(sorted(defaults))}"
        )
    merged = {**defaults, **params}
    return fn(frame, **merged)

