#!/usr/bin/env python3
"""sitepub CLI entrypoint."""

import sys
import json
import time
import logging
import argparse
from pathlib import Path

from sitepub.lib.config import load_config
from sitepub.lib.constants import EXIT_CONFIG_ERROR, EXIT_ERROR, EXIT_SUCCESS, TAG_SOURCE_NONE
from sitepub.lib.errors import ConfigurationError
from sitepub.service import DeploymentService

PREVIEW_POLL_SECONDS = 1.0


def get_service(args) -> DeploymentService:
    """Load configuration and build the service, exiting on config errors."""
    try:
        config = load_config(Path(args.env_file) if args.env_file else None)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
    return DeploymentService(config)


def emit(args, result) -> None:
    """Print a result as JSON (--json) or as its message."""
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.message)


def exit_code(result) -> int:
    return EXIT_SUCCESS if result.success else EXIT_ERROR


def cmd_status(args):
    status = get_service(args).status()
    if args.json:
        print(json.dumps(status.to_dict(), indent=2))
        return EXIT_SUCCESS

    print(f"Current tag:          {status.current_tag or '(none)'}")
    print(f"Unpublished changes:  {'yes' if status.has_unpublished_changes else 'no'}")
    print(status.message)
    return EXIT_SUCCESS


def cmd_tags(args):
    listing = get_service(args).list_tags()
    if args.json:
        print(json.dumps(listing.to_dict(), indent=2))
    else:
        if listing.message:
            print(f"# {listing.message}")
        for tag in listing.tags:
            print(tag)
        if not listing.tags:
            print("No tags found.")
    return EXIT_SUCCESS if listing.source != TAG_SOURCE_NONE else EXIT_ERROR


def cmd_publish(args):
    result = get_service(args).publish()
    emit(args, result)
    return exit_code(result)


def cmd_rollback(args):
    result = get_service(args).rollback(args.tag)
    emit(args, result)
    return exit_code(result)


def cmd_sync(args):
    result = get_service(args).sync()
    emit(args, result)
    return exit_code(result)


def cmd_commit(args):
    result = get_service(args).commit(args.message)
    emit(args, result)
    return exit_code(result)


def cmd_preview(args):
    """Run the preview server in the foreground until interrupted."""
    service = get_service(args)
    result = service.preview_start()
    emit(args, result)
    if not result.success:
        return EXIT_ERROR

    print("Press Ctrl-C to stop the preview.", file=sys.stderr)
    try:
        while service.preview_status().is_running:
            time.sleep(PREVIEW_POLL_SECONDS)
        print("Preview process exited.", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        stopped = service.preview_stop()
        emit(args, stopped)
        return exit_code(stopped)
    finally:
        service.shutdown()


def main():
    parser = argparse.ArgumentParser(prog='sitepub', description='Static site publishing CLI')
    parser.add_argument('--env-file', '-e', help='Config file (default: ./publisher.env if present)')
    parser.add_argument('--json', action='store_true', help='Print results as JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # sitepub status
    p_status = subparsers.add_parser('status', help='Show whether unpublished changes exist')
    p_status.set_defaults(func=cmd_status)

    # sitepub tags
    p_tags = subparsers.add_parser('tags', help='List published tags, newest first')
    p_tags.set_defaults(func=cmd_tags)

    # sitepub publish
    p_publish = subparsers.add_parser('publish', help='Build, deploy and tag the site')
    p_publish.set_defaults(func=cmd_publish)

    # sitepub rollback
    p_rollback = subparsers.add_parser('rollback', help='Rebuild the repository at a published tag')
    p_rollback.add_argument('tag', help='Tag to roll back to (e.g., v1.0.3)')
    p_rollback.set_defaults(func=cmd_rollback)

    # sitepub preview
    p_preview = subparsers.add_parser('preview', help='Run the live preview until Ctrl-C')
    p_preview.set_defaults(func=cmd_preview)

    # sitepub sync
    p_sync = subparsers.add_parser('sync', help='Clone or fast-forward the content repository')
    p_sync.set_defaults(func=cmd_sync)

    # sitepub commit
    p_commit = subparsers.add_parser('commit', help='Commit and push content changes')
    p_commit.add_argument('--message', '-m', required=True, help='Commit message')
    p_commit.set_defaults(func=cmd_commit)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    sys.exit(args.func(args))


if __name__ == '__main__':
    main()
