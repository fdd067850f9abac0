"""
内置的默认 analyzer（基于 tree-sitter）。

用法（与外部 analyzer 约定一致）：
  python -m codevis.analyzer -f <file> -t <java|cpp> -c Initial

成功时向 stdout 输出一行 analyzer JSON；语言不支持或文件不可读时以非 0 退出。
"""

from __future__ import annotations

import argparse
import json
import sys

from codevis.analyzer.treesitter import SUPPORTED_LANGUAGES
from codevis.analyzer.treesitter import analyze_source


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="codevis.analyzer")
    parser.add_argument("-f", "--file", required=True)
    parser.add_argument("-t", "--type", required=True, choices=SUPPORTED_LANGUAGES)
    parser.add_argument("-c", "--context", default="Initial", choices=("Initial",))
    args = parser.parse_args(argv)

    try:
        with open(args.file, "rb") as handle:
            source = handle.read()
    except OSError as exc:
        print(f"could not read {args.file}: {exc}", file=sys.stderr)
        return 1

    result = analyze_source(source, language=args.type, file_name=args.file)
    sys.stdout.write(json.dumps(result))
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
