"""
Command-line entry point for the contextual web navigator.

Follows relevant links from a start URL and prints the navigation result
as JSON.
"""
import argparse
import json
import sys
import time

from browsing.service import ContextualBrowser
from utils.config import AppConfig
from utils.errors import NavigatorError
from utils.logger import setup_logger

logger = setup_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Follow relevant links from a web page and report what was visited",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Follow up to 2 links about energy, one level deep
  python main.py https://example.com/a --keywords energy --max-links 2

  # Stay on the start domain and go two levels deep
  python main.py https://example.com --keywords solar wind --depth 2 --stay-on-domain

  # Extract a single page as plain text
  python main.py https://example.com --extract --form text
        """
    )

    parser.add_argument('url', help='Start URL (http or https)')
    parser.add_argument('--keywords', '-k', nargs='*', default=[], help='Goal keywords guiding link selection')
    parser.add_argument('--depth', '-d', type=int, default=1, help='Link levels to follow (1-3, default: 1)')
    parser.add_argument('--max-links', '-m', type=int, default=3, help='Links followed from the start page (1-5, default: 3)')
    parser.add_argument('--stay-on-domain', action='store_true', help='Only follow links on the start host')
    parser.add_argument('--exclude-domain', action='append', default=[], help='Host never followed (repeatable)')
    parser.add_argument('--timeout', type=float, default=None, help='Stop navigating after this many seconds')
    parser.add_argument('--extract', action='store_true', help='Only extract the start page')
    parser.add_argument('--form', default='markdown', choices=['text', 'markdown', 'html'], help='Output form for --extract')
    parser.add_argument('--output', '-o', default=None, help='Write JSON to this file instead of stdout')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = AppConfig.from_env()

    try:
        with ContextualBrowser(config, start_sweeper=False) as browser:
            if args.extract:
                payload = browser.extract(args.url, args.form).to_dict()
            else:
                deadline = time.monotonic() + args.timeout if args.timeout else None
                result = browser.follow_links(
                    args.url,
                    keywords=args.keywords,
                    max_links=args.max_links,
                    depth=args.depth,
                    stay_on_domain=args.stay_on_domain,
                    exclude_domains=args.exclude_domain,
                    deadline=deadline,
                )
                payload = result.to_dict()
    except NavigatorError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        return 1

    text = json.dumps(payload, indent=2, ensure_ascii=False, default=list)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(text)
        logger.info(f"Result written to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
