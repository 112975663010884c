import argparse
import json
import logging
import signal
import sys
import threading
from typing import Any, List, Optional

from core.app_context import AppContext
from core.config_loader import AppConfig, load_config
from core.llm.providers import resolve_llm_config, validate_llm_config
from entities.repository import EntityNotFoundError, YamlEntityRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Student/project match scoring")
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to config.yaml (default: config.yaml)')
    parser.add_argument('--entities', type=str, default=None,
                        help='Entity fixture file (overrides entities.path in config)')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    sub = parser.add_subparsers(dest='command', required=True)

    score = sub.add_parser('score', help='Score one student/project pair')
    score.add_argument('student_id')
    score.add_argument('project_id')

    recommend = sub.add_parser('recommend', help='Top active projects for a student')
    recommend.add_argument('student_id')
    recommend.add_argument('--limit', type=int, default=None)

    candidates = sub.add_parser('candidates', help='Top students for a project')
    candidates.add_argument('project_id')
    candidates.add_argument('--limit', type=int, default=None)

    invalidate = sub.add_parser('invalidate', help='Invalidate cached results for an entity')
    target = invalidate.add_mutually_exclusive_group(required=True)
    target.add_argument('--student', dest='student_id')
    target.add_argument('--project', dest='project_id')

    sub.add_parser('cache-stats', help='Show match cache statistics')
    sub.add_parser('clear-cache', help='Delete every cached match result')
    sub.add_parser('check-config', help='Validate LLM provider configuration')
    sub.add_parser('listen', help='Invalidate on entity events published to Redis')

    return parser


def check_config(config: AppConfig) -> int:
    resolved = resolve_llm_config(config.llm)
    problems = validate_llm_config(config.llm)
    _print_json({
        "provider": resolved.provider,
        "base_url": resolved.base_url,
        "model": resolved.model,
        "api_key_set": bool(resolved.api_key),
        "valid": not problems,
        "problems": problems,
    })
    return 0 if not problems else 1


def run_listener(ctx: AppContext) -> int:
    listener = ctx.build_listener()
    if listener is None:
        logger.error("Match cache is disabled or unreachable; nothing to listen with")
        return 1

    stop_event = threading.Event()

    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    listener.run(stop_event)
    return 0


def run_command(args: argparse.Namespace, ctx: AppContext) -> int:
    orchestrator = ctx.orchestrator

    if args.command == 'score':
        score = orchestrator.get_score(args.student_id, args.project_id)
        _print_json(score.to_public_dict())

    elif args.command == 'recommend':
        matches = orchestrator.get_student_recommendations(args.student_id, args.limit)
        _print_json([m.to_public_dict() for m in matches])

    elif args.command == 'candidates':
        matches = orchestrator.get_project_candidates(args.project_id, args.limit)
        _print_json([m.to_public_dict() for m in matches])

    elif args.command == 'invalidate':
        if ctx.invalidation is None:
            logger.error("Match cache is disabled")
            return 1
        if args.student_id:
            report = ctx.invalidation.on_student_changed(args.student_id)
        else:
            report = ctx.invalidation.on_project_changed(args.project_id)
        _print_json(report.to_dict())

    elif args.command == 'cache-stats':
        stats = ctx.cache.stats() if ctx.cache else {"available": False, "enabled": False}
        _print_json(stats)

    elif args.command == 'clear-cache':
        if ctx.invalidation is None:
            logger.error("Match cache is disabled")
            return 1
        _print_json({"deleted": ctx.invalidation.clear_all()})

    elif args.command == 'listen':
        return run_listener(ctx)

    logger.debug(f"Matching metrics: {orchestrator.metrics.snapshot()}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    if args.command == 'check-config':
        return check_config(config)

    entities_path = args.entities or config.entities.path
    try:
        repository = YamlEntityRepository.from_file(entities_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load entities: {e}")
        return 1

    ctx = AppContext.build(config, repository)
    try:
        return run_command(args, ctx)
    except (EntityNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
