"""Print the highlight segments for a text file and a JSON list of issues.

    python -m backend.scripts.preview entry.txt issues.json
    cat entry.txt | python -m backend.scripts.preview - issues.json --inline
"""
import argparse
import json
import sys
from backend.app.services.segments import build_segments

def render_inline(segments) -> str:
    out = []
    for s in segments:
        out.append(s.text if s.is_plain else f"[{s.kind}:{s.text}]")
    return "".join(out)

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("text", help="path to the text, or - for stdin")
    parser.add_argument("issues", nargs="?", help="JSON file with a list of issues or an {'issues': [...]} object")
    parser.add_argument("--inline", action="store_true", help="print bracketed markup instead of JSON lines")
    args = parser.parse_args(argv)

    if args.text == "-":
        text = sys.stdin.read()
    else:
        with open(args.text, encoding="utf-8") as f:
            text = f.read()

    issues = []
    if args.issues:
        with open(args.issues, encoding="utf-8") as f:
            data = json.load(f)
        issues = data.get("issues", []) if isinstance(data, dict) else data

    segments = build_segments(text, issues)
    if args.inline:
        print(render_inline(segments))
    else:
        for s in segments:
            print(json.dumps({"text": s.text, "type": s.kind, "tip": s.note}, ensure_ascii=False))
    return 0

if __name__ == "__main__":
    sys.exit(main())
