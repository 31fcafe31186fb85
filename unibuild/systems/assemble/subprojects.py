"""Sub-project name disambiguation for assembled parts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from unibuild.errors import IntegrityError
from unibuild.systems.assemble.naming import DEFAULT_SUBPROJECT


def adapt_subprojects(
    parts: Sequence[tuple[str, Sequence[str]]],
) -> list[tuple[str, list[str]]]:
    """Make sub-project names unique across parts.

    The placeholder sub-project name becomes the part's own name, or
    ``<part>-<placeholder>`` when the part already has a sub-project with
    its own name.  Any name that is still shared by several entries is
    then prefixed with its part's name everywhere it occurs.

    The output keeps the per-part order of the input, so it can be zipped
    positionally against per-sub-project build results.  Raises
    ``IntegrityError`` when the names cannot be made unique this way.

    >>> adapt_subprojects([("a", ["default-sbt-project"]), ("b", ["core"]), ("c", ["core"])])
    [('a', ['a']), ('b', ['b-core']), ('c', ['c-core'])]
    """
    substituted: list[tuple[str, list[str]]] = []
    for part, subs in parts:
        names = []
        for sub in subs:
            if sub == DEFAULT_SUBPROJECT:
                sub = part if part not in subs else f"{part}-{DEFAULT_SUBPROJECT}"
            names.append(sub)
        substituted.append((part, names))

    counts = Counter(sub for _, subs in substituted for sub in subs)
    adapted = [
        (part, [f"{part}-{sub}" if counts[sub] > 1 else sub for sub in subs])
        for part, subs in substituted
    ]

    # a prefixed name may land on one that was already taken
    final = Counter(sub for _, subs in adapted for sub in subs)
    repeated = sorted(sub for sub, n in final.items() if n > 1)
    if repeated:
        raise IntegrityError(
            "These subproject names appear twice: " + ", ".join(repeated), offenders=repeated
        )
    return adapted
