"""CLI entry point for llm-guardrail."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, cast

from guardrail import __version__
from guardrail.formatters import FileResult, OutputFormat, format_report, format_result
from guardrail.git_changes import GitChangesError, get_commit_changes, get_staged_changes
from guardrail.rule_engine.approvals import approvals_from_report, update_rules_file
from guardrail.rule_engine.config import (
    find_rules_file,
    load_guardrail_config,
    resolve_base,
    resolve_for_file,
)
from guardrail.rule_engine.directives import generate_prompt_directives
from guardrail.rule_engine.evaluator import evaluate
from guardrail.rule_engine.models import RuleSet
from guardrail.rule_engine.templates import OVERRIDE_TEMPLATE, RULE_TEMPLATES, get_template
from guardrail.server.runner import run_server


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1 like every other failure."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        _fail(message)


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        _fail(f"File not found: {source}")
    return path.read_text(encoding="utf-8")


def _locate_rules(explicit: str | None) -> Path:
    """The --rules path, or the nearest rules file above the working directory."""
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            _fail(f"Rules file not found: {explicit}")
        return path
    config = load_guardrail_config()
    found = find_rules_file(Path.cwd(), config.rules_file)
    if found is None:
        _fail(f"No {config.rules_file} found. Create one or specify with --rules")
    return found


def _rules_for(rules_path: Path, file_name: str | None) -> RuleSet:
    if file_name:
        return resolve_for_file(file_name, rules_path.parent, rules_path=rules_path)
    return resolve_base(rules_path)


def _emit(output: str, destination: str | None) -> None:
    if destination:
        Path(destination).write_text(output, encoding="utf-8")
        print(f"Results written to {destination}")
    else:
        print(output)


def _cmd_validate(args: argparse.Namespace) -> None:
    before_src = cast(str, args.before)
    after_src = cast(str, args.after)
    if before_src == "-" and after_src == "-":
        _fail("Only one of --before/--after can read from stdin")

    before = _read_input(before_src)
    after = _read_input(after_src)
    rules_path = _locate_rules(args.rules)
    file_name = cast(str | None, args.file_name)
    rule_set = _rules_for(rules_path, file_name)

    report_name = file_name or (after_src if after_src != "-" else None)
    result = evaluate(before, after, rule_set, report_name)

    fmt = OutputFormat(args.format)
    colors = not args.no_colors and fmt == OutputFormat.TEXT and not args.output
    _emit(
        format_result(result, fmt, file_name=report_name, verbose=args.verbose, colors=colors),
        args.output,
    )
    if not result.valid:
        sys.exit(1)


def _cmd_check(args: argparse.Namespace) -> None:
    rules_path = _locate_rules(args.rules)
    workspace_root = rules_path.parent

    try:
        if args.commit:
            changes = get_commit_changes(args.commit)
        else:
            changes = get_staged_changes()
    except GitChangesError as e:
        _fail(str(e))

    if not changes:
        print("No changes to validate.")
        return

    file_results: list[FileResult] = []
    for change in changes:
        rule_set = resolve_for_file(change.file_name, workspace_root, rules_path=rules_path)
        result = evaluate(
            change.before,
            change.after,
            rule_set,
            change.file_name,
            files_changed=len(changes),
        )
        file_results.append(FileResult(change.file_name, result))

    fmt = OutputFormat(args.format)
    colors = not args.no_colors and fmt == OutputFormat.TEXT and not args.output
    _emit(format_report(file_results, fmt, verbose=args.verbose, colors=colors), args.output)
    if not all(fr.result.valid for fr in file_results):
        sys.exit(1)


def _cmd_init(args: argparse.Namespace) -> None:
    config = load_guardrail_config()

    if args.override is not None:
        target = Path(args.override) / config.override_file
        content = OVERRIDE_TEMPLATE
        label = "override template"
    else:
        target = Path.cwd() / config.rules_file
        template = get_template(args.template)
        content = template.content
        label = f"{template.name.lower()} template"

    if target.exists() and not args.force:
        _fail(f"{target} already exists. Use --force to overwrite")

    target.parent.mkdir(parents=True, exist_ok=True)
    _ = target.write_text(content, encoding="utf-8")
    print(f"Created {target} using the {label}")


def _cmd_directives(args: argparse.Namespace) -> None:
    rules_path = _locate_rules(args.rules)
    text = generate_prompt_directives(_rules_for(rules_path, args.file_name))
    if not text:
        print("No rules configured.", file=sys.stderr)
        return
    print(text)


def _cmd_approve(args: argparse.Namespace) -> None:
    raw = _read_input(args.report)
    try:
        report = json.loads(raw)
    except json.JSONDecodeError as e:
        _fail(f"Report is not valid JSON: {e}")
    if not isinstance(report, dict):
        _fail("Report must be a JSON object")

    rules_path = _locate_rules(args.rules)
    mutated, edits = update_rules_file(rules_path, approvals_from_report(report))
    if not mutated:
        print("No rule changes needed.")
        return
    for edit in edits:
        print(f"  [{edit.rule_kind}] {edit.action}: {edit.value}")
    print(f"Updated {rules_path} ({len(edits)} change{'s' if len(edits) != 1 else ''})")


def _cmd_serve(args: argparse.Namespace) -> None:
    config = load_guardrail_config()
    if args.port is not None:
        config.port = args.port
    run_server(config, workspace_root=Path.cwd(), rules_path=args.rules)


def _add_output_options(p: argparse.ArgumentParser) -> None:
    _ = p.add_argument("-r", "--rules", default=None, help="Path to rules file (auto-detected)")
    _ = p.add_argument(
        "-f",
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output format (default: text)",
    )
    _ = p.add_argument("-o", "--output", default=None, help="Write output to file")
    _ = p.add_argument("-v", "--verbose", action="store_true", help="Show details and diff")
    _ = p.add_argument(
        "--no-colors", action="store_true", dest="no_colors", help="Disable colored output"
    )


def main() -> None:
    parser = _ArgumentParser(
        prog="guardrail",
        description="Validate AI-generated code changes against guardrail rules",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"llm-guardrail {__version__}"
    )
    _ = parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # validate subcommand
    validate_p = subparsers.add_parser("validate", help="Validate changes between two files")
    _ = validate_p.add_argument(
        "-b", "--before", required=True, help="Original file (- for stdin)"
    )
    _ = validate_p.add_argument("-a", "--after", required=True, help="Modified file (- for stdin)")
    _ = validate_p.add_argument(
        "-n", "--file-name", default=None, dest="file_name", help="File name used in reports"
    )
    _add_output_options(validate_p)

    # check subcommand
    check_p = subparsers.add_parser("check", help="Validate staged or committed git changes")
    source = check_p.add_mutually_exclusive_group()
    _ = source.add_argument(
        "-s", "--staged", action="store_true", help="Check staged changes (default)"
    )
    _ = source.add_argument("-c", "--commit", default=None, help="Check a specific commit")
    _add_output_options(check_p)

    # init subcommand
    init_p = subparsers.add_parser("init", help="Write a starter rules file")
    _ = init_p.add_argument(
        "-t",
        "--template",
        choices=sorted(RULE_TEMPLATES),
        default="standard",
        help="Template to use (default: standard)",
    )
    _ = init_p.add_argument("--force", action="store_true", help="Overwrite an existing file")
    _ = init_p.add_argument(
        "--override",
        default=None,
        metavar="DIR",
        help="Write a directory override file into DIR instead",
    )

    # directives subcommand
    directives_p = subparsers.add_parser("directives", help="Print prompt directives")
    _ = directives_p.add_argument("-r", "--rules", default=None, help="Path to rules file")
    _ = directives_p.add_argument(
        "-n", "--file-name", default=None, dest="file_name", help="Resolve overrides for a file"
    )

    # approve subcommand
    approve_p = subparsers.add_parser("approve", help="Turn reported violations into exceptions")
    _ = approve_p.add_argument("report", help="JSON report from validate/check (- for stdin)")
    _ = approve_p.add_argument("-r", "--rules", default=None, help="Path to rules file")

    # serve subcommand
    serve_p = subparsers.add_parser("serve", help="Start the HTTP validation API")
    _ = serve_p.add_argument("--port", type=int, default=None, help="Port (default: 41888)")
    _ = serve_p.add_argument("-r", "--rules", default=None, help="Path to rules file")

    args = parser.parse_args(sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    dispatch = {
        "validate": _cmd_validate,
        "check": _cmd_check,
        "init": _cmd_init,
        "directives": _cmd_directives,
        "approve": _cmd_approve,
        "serve": _cmd_serve,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if handler:
        handler(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
