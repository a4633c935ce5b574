"""Template resolution: which trees to apply, and in which order.

The supported choices are an explicit table keyed by
``(Framework, Language, Styling)``.  Anything not listed is rejected with
``ConfigurationError`` before a single file is written.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .models import Framework, Language, ProjectSpec, Styling
from .templates import DEFAULT_TEMPLATE_DIR, TemplateTree, load_tree


ComboKey = tuple[Framework, Language, Styling]

_JS = Language.JAVASCRIPT
_TS = Language.TYPESCRIPT

# (framework, language, styling) -> (base, language overlay, styling overlay).
# Svelte has no Chakra UI port, so that pairing is deliberately absent.
COMBINATIONS: dict[ComboKey, tuple[str, ...]] = {
    (Framework.SVELTE, _JS, Styling.NONE): ("svelte",),
    (Framework.SVELTE, _JS, Styling.TAILWIND): ("svelte", "svelte-tailwind"),
    (Framework.SVELTE, _TS, Styling.NONE): ("svelte", "svelte-typescript"),
    (Framework.SVELTE, _TS, Styling.TAILWIND): ("svelte", "svelte-typescript", "svelte-tailwind"),
    (Framework.NEXT, _JS, Styling.NONE): ("next",),
    (Framework.NEXT, _JS, Styling.TAILWIND): ("next", "next-tailwind"),
    (Framework.NEXT, _JS, Styling.CHAKRA): ("next", "next-chakra"),
    (Framework.NEXT, _TS, Styling.NONE): ("next", "next-typescript"),
    (Framework.NEXT, _TS, Styling.TAILWIND): ("next", "next-typescript", "next-tailwind"),
    (Framework.NEXT, _TS, Styling.CHAKRA): ("next", "next-typescript", "next-chakra"),
    (Framework.VITE, _JS, Styling.NONE): ("vite",),
    (Framework.VITE, _JS, Styling.TAILWIND): ("vite", "vite-tailwind"),
    (Framework.VITE, _JS, Styling.CHAKRA): ("vite", "vite-chakra"),
    (Framework.VITE, _TS, Styling.NONE): ("vite", "vite-typescript"),
    (Framework.VITE, _TS, Styling.TAILWIND): ("vite", "vite-typescript", "vite-tailwind"),
    (Framework.VITE, _TS, Styling.CHAKRA): ("vite", "vite-typescript", "vite-chakra"),
}

# extra name -> {value -> overlay tree, or None for "no overlay"}
EXTRAS: dict[str, dict[str, Optional[str]]] = {
    "bundlr": {
        "node1": "bundlr-node1",
        "node2": "bundlr-node2",
        "no": None,
    },
}


class TemplateRegistry:
    """Maps a ``ProjectSpec`` to the ordered template trees to apply.

    Trees are loaded lazily from *template_dir* and cached for the lifetime
    of the registry.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
        self._cache: dict[str, TemplateTree] = {}

    def resolve(self, spec: ProjectSpec) -> list[TemplateTree]:
        """Return the trees for *spec*: base, language, styling, then extras.

        Raises:
            ConfigurationError: if the combination or an extra is unsupported,
                or a tree cannot be loaded.
        """
        return [self.tree(name) for name in self.tree_names(spec)]

    def tree_names(self, spec: ProjectSpec) -> list[str]:
        """Resolve *spec* to tree names without loading anything."""
        key = (spec.framework, spec.language, spec.styling)
        names = COMBINATIONS.get(key)
        if names is None:
            raise ConfigurationError(
                f"No template for framework={spec.framework.value}, "
                f"language={spec.language.value}, styling={spec.styling.value}",
                framework=spec.framework.value,
                language=spec.language.value,
                styling=spec.styling.value,
            )

        resolved = list(names)
        for extra, value in spec.extras.items():
            overlays = EXTRAS.get(extra)
            if overlays is None:
                raise ConfigurationError(f"Unknown option '{extra}'", extra=extra)
            choice = spec.choice(extra)
            if choice not in overlays:
                raise ConfigurationError(
                    f"Unsupported value {value!r} for option '{extra}' "
                    f"(expected one of: {', '.join(overlays)})",
                    extra=extra,
                    value=choice,
                )
            overlay = overlays[choice]
            if overlay is not None:
                resolved.append(overlay)
        return resolved

    def tree(self, name: str) -> TemplateTree:
        """Load (or return the cached) tree called *name*."""
        if name not in self._cache:
            tree = load_tree(self.template_dir / name)
            if tree.name != name:
                raise ConfigurationError(
                    f"Template directory '{name}' declares name '{tree.name}'",
                    template=name,
                )
            self._cache[name] = tree
        return self._cache[name]

    @staticmethod
    def combinations() -> list[ComboKey]:
        """Return every supported ``(framework, language, styling)`` key."""
        return list(COMBINATIONS)

