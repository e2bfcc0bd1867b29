import argparse
import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from . import __version__
from .baseline import scrape_glassdoor_baseline
from .careers import assess_candidate_experience
from .env import load_env, load_settings
from .extract import extract_mentions
from .fetcher import FetchPolicy
from .logger import get_logger, reset_logger
from .normalize import normalize_company
from .resolver import resolve_company_identity
from .schema import CompanyQuery, validate_query
from .search import build_identity_queries, build_query_urls


def _query_from_args(args: argparse.Namespace) -> CompanyQuery:
    data = {"company_name": args.name or "", "company_url": args.url or ""}
    errors = validate_query(data)
    if errors:
        raise SystemExit("Invalid input:\n" + "\n".join(f" - {e}" for e in errors))
    return CompanyQuery(**data)


def _emit(payload, output: str = None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {out}")
    else:
        print(text)


def cmd_resolve(args: argparse.Namespace) -> None:
    query = _query_from_args(args)
    policy = FetchPolicy.from_settings(args.settings)
    identity = resolve_company_identity(query.company_name, query.company_url, policy=policy)
    payload = {"identity": identity.to_dict()}
    if args.baseline:
        baseline = scrape_glassdoor_baseline(identity, policy=policy)
        payload["glassdoor_baseline"] = baseline.to_dict() if baseline else None
    payload["resolved_at"] = datetime.now(timezone.utc).isoformat()
    _emit(payload, args.output)


def cmd_baseline(args: argparse.Namespace) -> None:
    query = _query_from_args(args)
    policy = FetchPolicy.from_settings(args.settings)
    identity = resolve_company_identity(query.company_name, query.company_url, policy=policy)
    baseline = scrape_glassdoor_baseline(identity, policy=policy)
    if baseline is None:
        print("No Glassdoor baseline found.")
        return
    _emit(baseline.to_dict(), args.output)


def cmd_careers(args: argparse.Namespace) -> None:
    query = _query_from_args(args)
    sentiment = None
    if args.rating is not None or args.reviews is not None:
        sentiment = {"aggregated_score": args.rating, "total_reviews": args.reviews}
    assessment = assess_candidate_experience(
        query.company_name,
        query.company_url,
        talent_sentiment=sentiment,
        policy=FetchPolicy.from_settings(args.settings),
        timeout=args.settings.probe_timeout,
    )
    _emit(assessment.to_dict(), args.output)


def cmd_queries(args: argparse.Namespace) -> None:
    query = _query_from_args(args)
    company = normalize_company(query.company_name, query.company_url)
    queries = build_identity_queries(company)
    print(f"Search name: {company.search_name}")
    print(f"Preferred URL: {company.preferred_url}")
    print("Queries:")
    for q in queries:
        print(f" - {q}")
    if args.urls:
        print("Mirror URLs:")
        for u in build_query_urls(queries):
            print(f" - {u}")


def cmd_extract(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    text = input_path.read_text(encoding="utf-8", errors="replace")
    mentions = extract_mentions(text)
    if not mentions:
        print("No platform mentions found.")
        return
    _emit([asdict(m) for m in mentions], args.output)


def _add_company_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name", help="Company name")
    p.add_argument("--url", help="Company website URL or domain")


def main():
    # Load .env if present (COMPANYRESOLVER_* settings)
    load_env()
    settings = load_settings()

    parser = argparse.ArgumentParser(
        prog="companyresolver",
        description="Resolve a company to its Glassdoor/Indeed pages and rating baseline",
    )
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")

    subparsers = parser.add_subparsers(dest="command")

    res = subparsers.add_parser("resolve", help="Resolve a company identity")
    _add_company_args(res)
    res.add_argument("--baseline", action="store_true", help="Also scrape the Glassdoor rating baseline")
    res.add_argument("--output", help="Write JSON to this file instead of stdout")
    res.set_defaults(func=cmd_resolve)

    bas = subparsers.add_parser("baseline", help="Resolve a company and scrape its Glassdoor baseline")
    _add_company_args(bas)
    bas.add_argument("--output", help="Write JSON to this file instead of stdout")
    bas.set_defaults(func=cmd_baseline)

    car = subparsers.add_parser("careers", help="Assess candidate experience from careers pages")
    _add_company_args(car)
    car.add_argument("--rating", type=float, help="Known aggregated employee rating (fallback input)")
    car.add_argument("--reviews", type=int, help="Known total review count (fallback input)")
    car.add_argument("--output", help="Write JSON to this file instead of stdout")
    car.set_defaults(func=cmd_careers)

    qry = subparsers.add_parser("queries", help="Print the search query pool without fetching")
    _add_company_args(qry)
    qry.add_argument("--urls", action="store_true", help="Also print mirror URLs for each query")
    qry.set_defaults(func=cmd_queries)

    ext = subparsers.add_parser("extract", help="Extract platform mentions from a saved search page")
    ext.add_argument("--input", required=True, help="Path to a saved HTML or text search page")
    ext.add_argument("--output", help="Write JSON to this file instead of stdout")
    ext.set_defaults(func=cmd_extract)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    reset_logger()
    logger = get_logger(level="DEBUG" if args.verbose else settings.log_level, log_dir=settings.log_dir)
    args.settings = settings

    if hasattr(args, "func"):
        args.func(args)
        logger.log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
