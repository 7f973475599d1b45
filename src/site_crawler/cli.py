from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .compare import compare_exports
from .crawl import CrawlConfig, SiteCrawler
from .log import configure_logging
from .manifest import write_result
from .seed import Seed
from .session import FormLogin, SessionConfig


def _parse_seed(text: str) -> tuple[str, str | None]:
    path, sep, name = text.partition("=")
    if not path.startswith("/"):
        raise argparse.ArgumentTypeError(f"seed path must start with '/': {text}")
    return path, (name if sep and name else None)


def _parse_pair(text: str, sep: str, what: str) -> tuple[str, str]:
    key, found, value = text.partition(sep)
    if not found or not key:
        raise argparse.ArgumentTypeError(f"expected {what}, got {text!r}")
    return key, value


def _parse_credentials(text: str) -> tuple[str, str]:
    return _parse_pair(text, ":", "USER:PASSWORD")


def _parse_field(text: str) -> tuple[str, str]:
    return _parse_pair(text, "=", "NAME=VALUE")


def _add_crawl_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--site", required=True, help="e.g. http://www.example.com")
    p.add_argument(
        "--seed",
        action="append",
        required=True,
        type=_parse_seed,
        help="Repeatable; PATH or PATH=NAME, e.g. --seed /admin=editor",
    )
    p.add_argument(
        "--limit", type=int, default=None, help="Max pages parsed per seed"
    )
    p.add_argument(
        "--log", type=int, default=1, choices=range(0, 5), help="Verbosity 0-4"
    )
    p.add_argument("--timeout", type=float, default=1.0)
    p.add_argument("--max-duration", type=float, default=2.0)
    p.add_argument("--max-redirects", type=int, default=5)
    p.add_argument("--user-agent", default=None)
    p.add_argument("--auth-basic", type=_parse_credentials, default=None)
    p.add_argument("--login-path", default=None)
    p.add_argument("--login-button", default=None)
    p.add_argument(
        "--login-field",
        action="append",
        type=_parse_field,
        default=[],
        help="Repeatable; NAME=VALUE sent with the login form",
    )
    p.add_argument("--out", type=Path, default=None, help="Export directory")
    p.add_argument(
        "--fail-on-broken",
        action="store_true",
        help="Exit 4 if any link failed or answered >= 400",
    )


def _run_crawl(args: argparse.Namespace) -> int:
    if bool(args.login_path) != bool(args.login_button):
        print("--login-path and --login-button go together", file=sys.stderr)
        return 2

    auth_login = None
    if args.login_path:
        auth_login = FormLogin(
            args.login_path, args.login_button, dict(args.login_field)
        )

    seeds = [
        Seed(path, name=name, auth_basic=args.auth_basic, auth_login=auth_login)
        for path, name in args.seed
    ]
    session_config = SessionConfig(
        timeout_s=args.timeout,
        max_duration_s=args.max_duration,
        max_redirects=args.max_redirects,
        user_agent=args.user_agent,
    )

    configure_logging()
    crawler = SiteCrawler(args.site, seeds, session_config=session_config)
    crawler.crawl(CrawlConfig(limit=args.limit, log=args.log))

    if args.out is not None:
        try:
            manifest = write_result(
                args.out, args.site, crawler.seeds, progress=sys.stderr.isatty()
            )
        except OSError as e:
            print(str(e), file=sys.stderr)
            return 2
        print(f"crawl: wrote {manifest}")

    failed = False
    broken_total = 0
    for seed in crawler.seeds:
        broken = seed.broken_links()
        broken_total += len(broken)
        print(
            f"crawl: seed={seed.label} pages={seed.pages_parsed} "
            f"links={len(seed.links)} files={len(seed.files)} "
            f"broken={len(broken)}"
        )
        for link in broken:
            print(f"- {link.display} {link.outcome} (found on {link.pages[0]})")
        if seed.error:
            failed = True
            print(
                f"crawl: seed={seed.label} failed: {seed.error}", file=sys.stderr
            )

    if failed:
        return 3
    if args.fail_on_broken and broken_total:
        return 4
    return 0


def _run_compare(args: argparse.Namespace) -> int:
    try:
        diff = compare_exports(args.old, args.new)
    except (OSError, ValueError, KeyError) as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(diff.to_dict(), indent=2))
    else:
        for label in diff.seeds_added:
            print(f"compare: seed added: {label}")
        for label in diff.seeds_removed:
            print(f"compare: seed removed: {label}")
        for seed in diff.seeds:
            if not seed.has_changes:
                continue
            print(f"compare: seed={seed.seed}")
            for key in seed.links_added:
                print(f"+ link {key}")
            for key in seed.links_removed:
                print(f"- link {key}")
            for change in seed.links_changed:
                print(
                    f"~ link {change.key} "
                    f"{change.old_outcome} -> {change.new_outcome}"
                )
            for path in seed.files_added:
                print(f"+ file {path}")
            for path in seed.files_removed:
                print(f"- file {path}")
            for path in seed.files_changed:
                print(f"~ file {path}")
        if not diff.has_changes:
            print("compare: no differences")

    return 4 if diff.has_changes else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="site-crawler")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl_p = sub.add_parser("crawl", help="Crawl a site from one or more seeds")
    _add_crawl_args(crawl_p)

    compare_p = sub.add_parser(
        "compare", help="Compare two exports written by 'crawl --out'"
    )
    compare_p.add_argument("old", type=Path)
    compare_p.add_argument("new", type=Path)
    compare_p.add_argument("--json", action="store_true")

    args = parser.parse_args(argv)

    if args.cmd == "crawl":
        return _run_crawl(args)
    if args.cmd == "compare":
        return _run_compare(args)

    parser.error(f"unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
