"""Stand-in for the external analyzer used by the tests.

Behaviour is keyed on the file name so one script covers every case:
- ``Broken*``   -> prints malformed JSON
- ``Crash*``    -> exits non-zero
- ``Inverted*`` -> a function whose start line is after its end line
- anything else -> one namespace ``HelloWorld`` with ``main`` on lines 6-8
"""

from __future__ import annotations

import json
import os
import sys


def main() -> int:
    args = sys.argv[1:]
    path = args[args.index("-f") + 1]
    name = os.path.basename(path)
    if name.startswith("Broken"):
        print("{not json")
        return 0
    if name.startswith("Crash"):
        print("parser exploded", file=sys.stderr)
        return 1
    start, end = (9, 2) if name.startswith("Inverted") else (6, 8)
    output = {
        "file": {
            "file_name": path,
            "functions": None,
            "namespaces": [
                {
                    "namespace": {
                        "name": "HelloWorld",
                        "functions": [{"function": {"name": "main", "start_line": start, "end_line": end}}],
                        "namespaces": None,
                        "classes": None,
                    },
                    "line_nr": 0,
                }
            ],
            "classes": None,
        }
    }
    print(json.dumps(output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
