import argparse
import logging
from typing import List, Optional

from scenario_runner.config import SCREENSHOT_MODES, load_project_config
from scenario_runner.errors import RunnerError, SessionUnavailable
from scenario_runner.providers.yaml_suite import YamlSuiteProvider
from scenario_runner.runner.runner import Runner
from scenario_runner.server import StaticServer

LOGGER = logging.getLogger("scenario_runner")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run declarative browser scenarios with Playwright.")
    parser.add_argument("paths", nargs="*", help="Suite files or directories (default: the suites directory)")
    parser.add_argument("-g", "--grep", "--filter", dest="grep",
                        help="Only run scenarios whose 'suite › scenario' title matches this regex")
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser without a visible window (default: on)",
    )
    parser.add_argument("--base-url", help="Navigation root for relative URLs; overrides suite settings")
    parser.add_argument("--retries", type=int, help="Re-run a failed scenario up to N times")
    parser.add_argument("--workers", type=int, help="Number of scenarios run concurrently")
    parser.add_argument("--browser", choices=["chromium", "firefox", "webkit"], help="Browser engine")
    parser.add_argument("--timeout", type=int, help="Locator / wait / assert timeout in ms")
    parser.add_argument("--navigation-timeout", type=int, help="Navigation timeout in ms")
    parser.add_argument("--screenshot", choices=SCREENSHOT_MODES, help="When to keep a screenshot")
    parser.add_argument("--artifacts-dir", help="Directory for screenshots")
    parser.add_argument("--report-json", help="Write results as JSON to this file")
    parser.add_argument("--serve", help="Serve this directory over HTTP and use it as base URL")
    parser.add_argument("--config", help="Project config file (default: scenario_runner.yaml if present)")
    parser.add_argument("--list", action="store_true", help="List matching scenarios without running them")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_level = logging.WARNING
    if args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose >= 1:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s %(message)s")

    server = None
    try:
        config = load_project_config(args.config).with_overrides({
            "grep": args.grep,
            "headless": args.headless,
            "base_url": args.base_url,
            "retries": args.retries,
            "workers": args.workers,
            "browser": args.browser,
            "timeout": args.timeout,
            "navigation_timeout": args.navigation_timeout,
            "screenshot": args.screenshot,
            "artifacts_dir": args.artifacts_dir,
            "report_json": args.report_json,
            "serve": args.serve,
        })

        suites = YamlSuiteProvider(args.paths or [config.suites_dir]).get_suites()

        if config.serve:
            server = StaticServer(config.serve)
            url = server.start()
            if not config.base_url:
                config = config.with_overrides({"base_url": url})

        runner = Runner(config)
        selected = runner.select(suites)
        if not selected:
            print("No scenarios matched.")
            return 1

        if args.list:
            for suite, scenarios in selected:
                for scenario in scenarios:
                    print(f"  {suite.name} › {scenario.name}")
            return 0

        reporter = runner.run(suites)
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted by user.")
        return 130
    except SessionUnavailable as exc:
        LOGGER.error("%s", exc)
        print("Is the browser installed? Try `playwright install chromium`.")
        return 2
    except RunnerError as exc:
        LOGGER.error("%s", exc)
        return 2
    finally:
        if server is not None:
            server.stop()

    reporter.print_summary()
    if config.report_json:
        reporter.write_json(config.report_json)
        print(f"Saved results to {config.report_json}")
    return 0 if reporter.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
