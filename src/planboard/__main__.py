"""cli entrypoint for planboard."""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .core.extractor import extract_content
from .core.models import Snapshot
from .core.templates import TemplateRegistry

console = Console()


def cmd_serve(args) -> int:
    from .api.server import serve

    serve(host=args.host, port=args.port, data_dir=args.data_dir, mock=args.mock, reload=args.reload)
    return 0


def cmd_templates(args) -> int:
    table = Table(title="diagram templates")
    table.add_column("key", style="cyan")
    table.add_column("name")
    table.add_column("nodes", justify="right")
    table.add_column("description", style="dim")
    for t in TemplateRegistry().list_templates():
        table.add_row(t.key, t.name, str(len(t.nodes)), t.description)
    console.print(table)
    return 0


def cmd_extract(args) -> int:
    path = Path(args.file)
    try:
        with open(path) as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]could not read {path}: {e}[/]")
        return 1

    content = extract_content(Snapshot.from_dict(payload))
    console.print(Markdown(content.summary))
    if content.goals:
        console.print(Panel("\n".join(f"- {g}" for g in content.goals), title="goals"))
    else:
        console.print("[dim]no goals found[/]")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="planboard - diagram editor for project planning"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the api server")
    serve.add_argument("--host", default="127.0.0.1", help="host to bind")
    serve.add_argument("--port", "-p", type=int, default=8000, help="port to bind")
    serve.add_argument("--data-dir", "-d", type=Path, help="where saved diagrams live (default: ~/.planboard)")
    serve.add_argument(
        "--mock",
        "-m",
        action="store_true",
        help="use mock client (no api calls, for testing)",
    )
    serve.add_argument("--reload", action="store_true", help="enable auto-reload")
    serve.set_defaults(func=cmd_serve)

    templates = sub.add_parser("templates", help="list built-in diagram templates")
    templates.set_defaults(func=cmd_templates)

    extract = sub.add_parser("extract", help="summarize a saved diagram json file")
    extract.add_argument("file", help="path to a {nodes, edges} json file")
    extract.set_defaults(func=cmd_extract)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
