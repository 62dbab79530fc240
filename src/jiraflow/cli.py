"""jiraflow CLI.

Subcommands:
  list           -> issue tree (or JSON) with sprint/status grouping
  get            -> issue detail JSON (key or current branch)
  sprints        -> sprints of the configured board
  parse-branch   -> ticket/type/description parsed from a branch name
  comment        -> add a comment
  update         -> status transition and/or assignee change
  update-fields  -> start date / original estimate
  create-subtask -> new subtask under a parent issue
  create-branch  -> git branch named after an issue
  config         -> project, boards, sprints, issue types and fields from Jira
  init-config    -> create or edit the config file (no Jira access needed)

Every command prints to stdout only after it succeeded; failures print a
single JSON error record and exit 1.
"""

from __future__ import annotations

import argparse
import re
import sys
from typing import Any, NoReturn

from jiraflow import actions
from jiraflow.branch import current_branch, parse_branch, ticket_from_branch
from jiraflow.errors import INVALID_ARGS, TICKET_NOT_FOUND, JiraError
from jiraflow.listing import IssueLister
from jiraflow.query import FilterSet
from jiraflow.render import render_tree
from jiraflow.runtime import CommandContext, emit_json, execute_command, prepare_context
from jiraflow.scaffold import ConfigUpdate, init_config, resolve_config_target
from jiraflow.ux import print_lines, supports_color

CONFIG_HELP = "Config file (default: $JIRAFLOW_CONFIG, ./jiraflow.config.yaml, ./config.json)"
ISSUE_KEY = re.compile(r"^[A-Z][A-Z0-9]*-\d+$")

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)

    def error(self, message: str) -> NoReturn:
        # Usage errors surface through the JSON error boundary
        raise JiraError(INVALID_ARGS, message, self.format_usage().strip())


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands.

    Keep ordering stable for help output readability.
    """
    p = _FormatterArgumentParser(prog="jiraflow", description="Jira issue helpers")
    p.add_argument("--config", help=CONFIG_HELP)
    p.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    p.add_argument("--log-json", action="store_true", help="Structured JSON logs on stderr")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pl = sub.add_parser("list", help="List issues grouped by sprint and status")
    who = pl.add_mutually_exclusive_group()
    who.add_argument("--mine", action="store_true", help="Issues assigned to me")
    who.add_argument("--assignee", help="Team member name, alias or account id")
    pl.add_argument("--status", help="Status name or category (e.g. 'In Progress', 진행중)")
    pl.add_argument("--type", dest="issue_type", help="Issue type name (e.g. Story)")
    pl.add_argument("--empty", action="store_true", help="Only issues without description")
    pl.add_argument("--jql", help="Raw JQL (disables every other filter)")
    pl.add_argument("--limit", type=int, help="Max results (default: defaults.list_limit)")
    pl.add_argument("--all", action="store_true", help="Disable default status filtering")
    pl.add_argument("--sprint", help="current | next | closed | <sprint name>")
    pl.add_argument("--backlog", action="store_true", help="Issues without a sprint")
    pl.add_argument("--json", action="store_true", help="Emit JSON instead of a tree")
    pl.add_argument("--subtasks", action="store_true", help=argparse.SUPPRESS)

    pg = sub.add_parser("get", help="Show issue detail as JSON")
    pg.add_argument("key", nargs="?", help="Issue key (default: from current branch)")
    pg.add_argument("--from-branch", action="store_true")

    ps = sub.add_parser("sprints", help="List sprints of a board")
    ps.add_argument("--state", default="active,future", help="active,future,closed (comma list)")
    ps.add_argument("--board", type=int, help="Board id (default: configured default board)")

    pb = sub.add_parser("parse-branch", help="Extract the ticket from a branch name")
    pb.add_argument("branch", nargs="?", help="Branch name (default: current branch)")

    pc = sub.add_parser("comment", help="Add a comment to an issue")
    pc.add_argument("parts", nargs="*", help="[KEY] comment text")
    pc.add_argument("--from-branch", action="store_true")

    pu = sub.add_parser("update", help="Change status and/or assignee")
    pu.add_argument("key", nargs="?")
    pu.add_argument("--from-branch", action="store_true")
    pu.add_argument("--status")
    pu.add_argument("--assignee")
    pu.add_argument("--dry-run", action="store_true")

    pf = sub.add_parser("update-fields", help="Set start date and/or original estimate")
    pf.add_argument("key")
    pf.add_argument("--start-date", help="YYYY-MM-DD")
    pf.add_argument("--estimate", help="Jira duration (e.g. 1h, 2d)")

    pst = sub.add_parser("create-subtask", help="Create a subtask under a parent issue")
    pst.add_argument("parent")
    pst.add_argument("summary")
    pst.add_argument("--assignee")

    pcb = sub.add_parser("create-branch", help="Create a git branch for an issue")
    pcb.add_argument("key")
    pcb.add_argument("description")

    pcfg = sub.add_parser("config", help="Discover project settings from Jira")
    pcfg.add_argument("--project", help="Project key (default: jira.project)")
    pcfg.add_argument("--boards", action="store_true", help="Only boards")
    pcfg.add_argument("--sprints", action="store_true", help="Only sprints of the first board")
    pcfg.add_argument("--fields", action="store_true", help="Only story create-screen fields")
    pcfg.add_argument("--issue-types", action="store_true", help="Only issue types")

    pi = sub.add_parser("init-config", help="Create or edit the config file")
    pi.add_argument("--show", action="store_true", help="Print the whole config (token redacted)")
    pi.add_argument("--site", help="Jira site URL (e.g. https://acme.atlassian.net)")
    pi.add_argument("--project", help="Project key; also updates branch ticket_regex")
    pi.add_argument("--auth", nargs=2, metavar=("EMAIL", "TOKEN"))
    pi.add_argument("--add-board", nargs=2, metavar=("ID", "NAME"))
    pi.add_argument("--add-field", nargs=2, metavar=("KEY", "FIELD_ID"))
    pi.add_argument("--add-member", nargs=2, metavar=("NAME", "ACCOUNT_ID"))

    return p


def _filters_from_args(args: argparse.Namespace, default_limit: int) -> FilterSet:
    limit = args.limit if args.limit is not None else default_limit
    if limit <= 0:
        raise JiraError(INVALID_ARGS, "--limit must be a positive integer")
    if args.jql is not None:
        composed = [
            flag
            for flag, value in (
                ("--mine", args.mine),
                ("--assignee", args.assignee),
                ("--status", args.status),
                ("--type", args.issue_type),
                ("--sprint", args.sprint),
                ("--backlog", args.backlog),
                ("--empty", args.empty),
            )
            if value
        ]
        if composed:
            raise JiraError(
                INVALID_ARGS,
                "--jql cannot be combined with other filters",
                "Conflicting options: " + ", ".join(composed),
            )
    return FilterSet(
        mine=args.mine,
        assignee=args.assignee,
        status=args.status,
        issue_type=args.issue_type,
        sprint=args.sprint,
        backlog=args.backlog,
        empty=args.empty,
        jql=args.jql,
        limit=limit,
        all=args.all,
    )


def _cmd_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    filters = _filters_from_args(args, ctx.cfg.list_limit)
    result = IssueLister(ctx.cfg, ctx.client, ctx.logger).run(filters)
    if args.json:
        emit_json(result.to_record())
    else:
        print_lines(render_tree(result.issues, ctx.cfg.base_url, color=supports_color(sys.stdout)))
    return 0


def _resolve_key(ctx: CommandContext, key: str | None, from_branch: bool, *, required: bool) -> str:
    if key and not from_branch:
        return key
    if from_branch or not required:
        return ticket_from_branch(ctx.cfg)
    raise JiraError(TICKET_NOT_FOUND, "No ticket specified. Use an issue key or --from-branch")


def _cmd_get(ctx: CommandContext, args: argparse.Namespace) -> int:
    key = _resolve_key(ctx, args.key, args.from_branch, required=False)
    emit_json(actions.get_issue_detail(ctx.cfg, ctx.client, key))
    return 0


def _cmd_sprints(ctx: CommandContext, args: argparse.Namespace) -> int:
    emit_json(actions.list_sprints(ctx.cfg, ctx.client, state=args.state, board_id=args.board))
    return 0


def _cmd_parse_branch(ctx: CommandContext, args: argparse.Namespace) -> int:
    branch = args.branch or current_branch()
    parsed = parse_branch(
        branch, ctx.cfg.branch_patterns, ctx.cfg.ticket_regex, ctx.cfg.recommended_branch
    )
    emit_json(parsed.to_record())
    return 0


def _cmd_comment(ctx: CommandContext, args: argparse.Namespace) -> int:
    parts = list(args.parts)
    key: str | None = None
    if not args.from_branch and parts and ISSUE_KEY.match(parts[0]):
        key = parts.pop(0)
    key = _resolve_key(ctx, key, args.from_branch, required=True)
    emit_json(actions.add_comment(ctx.cfg, ctx.client, key, " ".join(parts)))
    return 0


def _cmd_update(ctx: CommandContext, args: argparse.Namespace) -> int:
    key = _resolve_key(ctx, args.key, args.from_branch, required=True)
    emit_json(
        actions.update_issue(
            ctx.cfg,
            ctx.client,
            key,
            status=args.status,
            assignee=args.assignee,
            dry_run=args.dry_run,
        )
    )
    return 0


def _cmd_update_fields(ctx: CommandContext, args: argparse.Namespace) -> int:
    emit_json(
        actions.update_fields(
            ctx.cfg, ctx.client, args.key, start_date=args.start_date, estimate=args.estimate
        )
    )
    return 0


def _cmd_create_subtask(ctx: CommandContext, args: argparse.Namespace) -> int:
    emit_json(
        actions.create_subtask(
            ctx.cfg, ctx.client, args.parent, args.summary, assignee=args.assignee
        )
    )
    return 0


def _cmd_create_branch(ctx: CommandContext, args: argparse.Namespace) -> int:
    emit_json(actions.create_branch(ctx.cfg, ctx.client, args.key, args.description))
    return 0


def _cmd_config(ctx: CommandContext, args: argparse.Namespace) -> int:
    emit_json(
        actions.discover_config(
            ctx.cfg,
            ctx.client,
            project=args.project,
            boards=args.boards,
            sprints=args.sprints,
            fields=args.fields,
            issue_types=args.issue_types,
        )
    )
    return 0


def _cmd_init_config(args: argparse.Namespace) -> int:
    board = None
    if args.add_board:
        board_id, name = args.add_board
        if not board_id.isdigit():
            raise JiraError(INVALID_ARGS, f"--add-board ID must be an integer, got {board_id!r}")
        board = (int(board_id), name)
    update = ConfigUpdate(
        site=args.site,
        project=args.project,
        auth=(args.auth[0], args.auth[1]) if args.auth else None,
        add_board=board,
        add_field=(args.add_field[0], args.add_field[1]) if args.add_field else None,
        add_member=(args.add_member[0], args.add_member[1]) if args.add_member else None,
    )
    emit_json(init_config(resolve_config_target(args.config), update, show=args.show))
    return 0


_HANDLERS = {
    "list": _cmd_list,
    "get": _cmd_get,
    "sprints": _cmd_sprints,
    "parse-branch": _cmd_parse_branch,
    "comment": _cmd_comment,
    "update": _cmd_update,
    "update-fields": _cmd_update_fields,
    "create-subtask": _cmd_create_subtask,
    "create-branch": _cmd_create_branch,
    "config": _cmd_config,
}

# Commands that must work before a valid config exists
_STANDALONE_HANDLERS = {
    "init-config": _cmd_init_config,
}


def main(argv: list[str] | None = None) -> int:
    def _run() -> int:
        args = _build_parser().parse_args(argv)
        if args.cmd in _STANDALONE_HANDLERS:
            return _STANDALONE_HANDLERS[args.cmd](args)
        ctx = prepare_context(args)
        return _HANDLERS[args.cmd](ctx, args)

    return execute_command(_run)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
