"""
Task tracker - periodic screen capture for a work session.

Captures every configured monitor every N seconds until Ctrl+C, then saves
session metadata and a review with an evenly sampled set of screenshots.

Usage:
    python scripts/task_tracker.py start "Fix login bug" --monitors 1,2 --interval 30
    python scripts/task_tracker.py start --preset coding
    python scripts/task_tracker.py analyze 20260131_142501 --samples 8
    python scripts/task_tracker.py stop
"""
import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from capture.screen import ScreenCapture
from core.clock import SYSTEM_CLOCK
from core.config import DEFAULT_CONFIG, TrackerConfig
from core.controller import SessionController
from core.errors import ConfigurationError, PersistenceError, TrackerError
from core.metadata import MetadataPersister
from core.monitors import describe_selection, resolve_monitors
from core.presets import PresetStore
from core.review import ReviewGenerator, build_analysis_bundle, save_summary
from core.session import Session
from core.store import CaptureStore

logger = logging.getLogger("task_tracker")


def print_displays(capture: ScreenCapture):
    displays = capture.describe()
    print(f"\nDetected {len(displays)} monitor(s):")
    for d in displays:
        print(f"  Monitor {d.number}: {d.width}x{d.height} at ({d.x}, {d.y})")


def prepare_session_dir(session: Session, config: TrackerConfig) -> Session:
    """Create the session directory, falling back to the default output dir once."""
    try:
        session.session_dir.mkdir(parents=True, exist_ok=True)
        return session
    except OSError as e:
        if Path(config.output_dir) == DEFAULT_CONFIG.output_dir:
            raise ConfigurationError(f"Failed to create session directory {session.session_dir}: {e}")
        logger.warning("Cannot use output directory %s (%s); falling back to %s",
                       config.output_dir, e, DEFAULT_CONFIG.output_dir)

    session.session_dir = DEFAULT_CONFIG.output_dir / session.session_id
    try:
        session.session_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Failed to create session directory {session.session_dir}: {e}")
    return session


def cmd_start(args, config: TrackerConfig) -> int:
    monitors_spec = config.monitors
    if args.preset:
        monitors_spec = PresetStore(config.presets_file).get(args.preset, default=config.monitors)
        print(f"Using preset '{args.preset}': monitors={monitors_spec}")

    with ScreenCapture() as capture:
        print_displays(capture)
        resolved = resolve_monitors(monitors_spec, capture.count())
        print(f"Will capture: {describe_selection(monitors_spec, resolved)}")

        session = Session.create(
            config.output_dir,
            SYSTEM_CLOCK.now(),
            monitors_config=monitors_spec,
            resolved_monitors=resolved,
            capture_interval=config.capture_interval,
        )
        prepare_session_dir(session, config)
        store = CaptureStore(capture, session.session_dir, multi_monitor=session.multi_monitor)

        def on_tick(tick: int, records):
            stamp = records[0].timestamp.strftime("%H%M%S") if records else "-"
            monitors = ""
            if session.multi_monitor:
                monitors = " (monitors: " + ", ".join(str(r.monitor_index) for r in records) + ")"
            print(f"Captured: {stamp}{monitors} ({len(session.records)} total screenshots)")

        controller = SessionController(session, store, on_tick=on_tick)
        print(f"Started capturing for: {args.task_name or session.default_task_name}")
        print(f"Saving to: {session.session_dir}")
        print("Press Ctrl+C when done\n")

        with controller.install_signal_handlers():
            controller.start(args.task_name)

    if controller.interrupt_signal is not None:
        print("\nInterrupt received, stopping capture...")
    print("\nCapture stopped")
    print(f"Duration: {session.duration_minutes:.1f} minutes")
    print(f"Total screenshots: {len(session.records)}")
    if session.multi_monitor:
        for monitor, count in sorted(controller.recorder.count_by_monitor().items()):
            print(f"  Monitor {monitor}: {count}")
    if controller.failed_captures:
        print(f"Failed captures: {controller.failed_captures}")

    if controller.flush_error is not None:
        print(f"Error saving metadata: {controller.flush_error}")
        return 1

    try:
        review_path = ReviewGenerator(config.sample_count).write(session)
    except PersistenceError as e:
        print(f"Failed to generate review: {e}")
        print("\nSession data saved. You can analyze later with:")
        print(f"  python scripts/task_tracker.py analyze {session.session_id}")
        return 1

    print("\n" + "=" * 50)
    print(f"Review saved to: {review_path}")
    return 0


def cmd_analyze(args, config: TrackerConfig) -> int:
    session_dir = Path(config.output_dir) / args.session_id
    session = MetadataPersister().load(session_dir)

    review_path = ReviewGenerator(config.sample_count).write(session)
    print(f"Review saved to: {review_path}")

    if args.bundle:
        bundle = build_analysis_bundle(session, config.sample_count)
        Path(args.bundle).write_text(json.dumps(bundle, indent=2), encoding="utf-8")
        print(f"Analysis bundle ({len(bundle['images'])} images) saved to: {args.bundle}")

    if args.summary_file:
        text = Path(args.summary_file).read_text(encoding="utf-8")
        print(f"Summary saved to: {save_summary(session.session_dir, text)}")
    return 0


def cmd_stop(args, config: TrackerConfig) -> int:
    print("Tip: stop a running capture by pressing Ctrl+C in its terminal.")
    print("     Metadata and the review are saved automatically.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-tracker",
        description="Task tracking with periodic screen capture",
    )
    parser.add_argument("-o", "--output-dir", help="Root directory for session captures")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start capturing screenshots")
    start.add_argument("task_name", nargs="?", default="", help="Name of the task being tracked")
    start.add_argument("-m", "--monitors", help="Monitors to capture (all, primary, 1, 1,2, ...)")
    start.add_argument("-i", "--interval", type=int, help="Capture interval in seconds")
    start.add_argument("-p", "--preset", help="Use a saved monitor preset")
    start.add_argument("-n", "--samples", type=int, help="Screenshots in the review")
    start.set_defaults(func=cmd_start)

    analyze = sub.add_parser("analyze", help="Regenerate the review of a saved session")
    analyze.add_argument("session_id")
    analyze.add_argument("-n", "--samples", type=int, help="Screenshots in the review")
    analyze.add_argument("--bundle", help="Also write the analysis bundle JSON to this file")
    analyze.add_argument("--summary-file", help="Store this file's text as the session summary")
    analyze.set_defaults(func=cmd_analyze)

    stop = sub.add_parser("stop", help="How to stop the current capture session")
    stop.set_defaults(func=cmd_stop)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = TrackerConfig.from_env().with_overrides(
            output_dir=args.output_dir,
            monitors=getattr(args, "monitors", None),
            capture_interval=getattr(args, "interval", None),
            sample_count=getattr(args, "samples", None),
            log_level="DEBUG" if args.verbose else None,
        )
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args, config)
    except PersistenceError as e:
        print(f"{'Fatal error' if e.fatal else 'Error'}: {e}")
        return 1
    except (TrackerError, OSError, RuntimeError) as e:
        # RuntimeError comes from the display backend when no graphical session is available
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
