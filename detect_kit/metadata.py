from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Union

_KEY_VALUE = re.compile(r"^[A-Za-z_][\w-]*:(\s|$)")


def load_class_names(path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class names for mapping `Prediction.label_index` to text.

    Two layouts are accepted. A `names:` block:

        names:
          0: person
          1: bicycle

    or a plain label file with one name per line, where the index is the
    line's position among non-blank, non-comment lines. A file with
    `key: value` lines but no `names:` block has no names and yields `{}`.
    """

    lines = []
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            lines.append(line)

    if "names:" not in lines:
        if any(_KEY_VALUE.match(line) for line in lines):
            return {}
        return {i: label for i, label in enumerate(lines)}

    names: Dict[int, str] = {}
    for line in lines[lines.index("names:") + 1 :]:
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        if not left.isdigit():
            # Next top-level key ends the block.
            break
        names[int(left)] = right.strip().strip("'").strip('"')

    return names
