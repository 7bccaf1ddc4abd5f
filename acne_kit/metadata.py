from __future__ import annotations

from typing import Dict, Tuple


def load_class_table(metadata_path: str) -> Tuple[str, ...]:
    """
    Load the class table from the project's lightweight `metadata.yaml` format.

    The file stores a simple mapping, ids in score-column order:

        names:
          0: comedone
          1: nodule
          ...

    Ids must be contiguous from 0 so the table lines up with the model output.
    This function intentionally avoids adding a PyYAML dependency.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            # Parse "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                # a new top-level key ends the names block
                in_names = False
                continue
            names[int(left)] = right

    if not names:
        raise ValueError(f"No class names found in {metadata_path}")
    if sorted(names) != list(range(len(names))):
        raise ValueError(f"Class ids in {metadata_path} must be contiguous from 0, got {sorted(names)}")
    return tuple(names[i] for i in range(len(names)))
