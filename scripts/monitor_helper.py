"""
Monitor helper - detect displays, take labelled test captures and manage
monitor presets for the task tracker.

Run with:
    python scripts/monitor_helper.py detect
    python scripts/monitor_helper.py test 2
    python scripts/monitor_helper.py test-all
    python scripts/monitor_helper.py preset coding 1,2 "Editor + browser"
    python scripts/monitor_helper.py list
    python scripts/monitor_helper.py get coding
    python scripts/monitor_helper.py setup
"""
import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from capture.screen import ScreenCapture, capture_test_image
from core.config import TrackerConfig
from core.errors import ConfigurationError, TrackerError
from core.presets import PresetStore


def detect_monitors(capture: ScreenCapture):
    """Print every display with its resolution, position and approximate size."""
    displays = capture.describe()
    print(f"\nDetected {len(displays)} monitor(s):\n")
    print(f"{'#':<5} {'Resolution':<15} {'Position':<20} {'Size (approx)':<15}")
    print("-" * 63)
    for d in displays:
        position = f"({d.x}, {d.y})"
        print(f"{d.number:<5} {d.resolution:<15} {position:<20} ~{d.diagonal_inches:.1f}\"")

    print("\nTips:")
    print("  - Monitor #1 is typically your primary monitor")
    print("  - Position shows where the monitor is in your layout")
    print("  - Use 'monitor_helper.py test-all' to identify each monitor visually")


def test_monitor(capture: ScreenCapture, monitor_number: int) -> Path:
    print(f"\nCapturing test screenshot from Monitor {monitor_number}...")
    path = capture_test_image(capture, monitor_number)
    print(f"Saved to: {path}")
    print("  Open this file to verify you're capturing the correct monitor")
    return path


def test_all_monitors(capture: ScreenCapture) -> int:
    """Capture a labelled test image from every monitor; returns how many succeeded."""
    count = capture.count()
    print(f"\nCapturing test screenshots from all {count} monitors...\n")
    saved = 0
    for number in range(1, count + 1):
        try:
            test_monitor(capture, number)
            saved += 1
        except Exception as e:
            print(f"Failed to capture monitor {number}: {e}")
            continue
        time.sleep(0.5)

    print(f"\nCreated {saved} test screenshots")
    print("  Review them to identify which monitor is which")
    return saved


def list_presets(store: PresetStore):
    presets = store.list_presets()
    if not presets:
        print("\nNo presets saved yet")
        print("\nCreate a preset with:")
        print("  python scripts/monitor_helper.py preset <name> <monitors> [description]")
        return

    print("\nSaved Monitor Presets:")
    for name, preset in presets.items():
        print(f"  * {name}")
        print(f"    Monitors: {preset.monitors}")
        if preset.description:
            print(f"    Description: {preset.description}")
        print(f"    Created: {preset.created}\n")

    print("Use a preset with:")
    print("  python scripts/task_tracker.py start 'Task name' --preset <name>")


def save_preset(store: PresetStore, name: str, monitors: str, description: str = ""):
    store.save(name, monitors, description)
    print(f"Saved preset '{name}': monitors={monitors}")
    if description:
        print(f"  Description: {description}")


def interactive_setup(capture: ScreenCapture, store: PresetStore):
    """Guide the user through identifying monitors and saving presets."""
    print("\n" + "=" * 64)
    print("  Task Tracker - Monitor Setup Wizard")
    print("=" * 64)

    detect_monitors(capture)

    if capture.count() == 1:
        print("\nYou have 1 monitor. No configuration needed!")
        print("  Just use: python scripts/task_tracker.py start 'Task name'")
        return

    print("\n" + "-" * 64)
    print("Step 1: Let's test each monitor to identify them")
    print("-" * 64)
    input("\nPress Enter to capture test screenshots from all monitors...")
    test_all_monitors(capture)

    print("\nPlease review the test_monitor_*.png files to identify each monitor")
    input("\nPress Enter when ready to continue...")

    print("\n" + "-" * 64)
    print("Step 2: Let's create some useful presets")
    print("-" * 64)
    print("\nCommon multi-monitor workflows:")
    print("  * Coding: Code editor + browser/docs")
    print("  * Design: Design tool + references")
    print("  * Meeting: Video call + notes")

    while True:
        create = input("\nWould you like to create a preset? (y/n): ").strip().lower()
        if create != 'y':
            break

        name = input("Preset name (e.g., 'coding', 'design', 'meeting'): ").strip()
        if not name:
            print("Preset name cannot be empty")
            continue

        print(f"\nWhich monitors for '{name}'?")
        print("  Examples: all, primary, 1, 1,2, 2,3")
        monitors = input("Monitors: ").strip() or "all"
        description = input("Description (optional): ").strip()

        try:
            save_preset(store, name, monitors, description)
        except (TrackerError, ValueError) as e:
            print(f"Failed to save preset: {e}")

    print("\n" + "=" * 64)
    print("  Setup Complete!")
    print("=" * 64)
    list_presets(store)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monitor-helper",
        description="Detect monitors, create test screenshots, and manage monitor presets",
    )
    parser.add_argument("--presets-file", help="Presets JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("detect", help="Detect and show all monitors")
    test = sub.add_parser("test", help="Capture test screenshot from a monitor")
    test.add_argument("monitor_num", type=int)
    sub.add_parser("test-all", help="Capture test screenshots from all monitors")

    preset = sub.add_parser("preset", help="Save a monitor configuration preset")
    preset.add_argument("name")
    preset.add_argument("monitors")
    preset.add_argument("description", nargs="?", default="")

    sub.add_parser("list", help="List all saved presets")
    get = sub.add_parser("get", help="Print the monitors config of a preset")
    get.add_argument("preset_name")
    sub.add_parser("setup", help="Interactive setup wizard")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = TrackerConfig.from_env().with_overrides(presets_file=args.presets_file)
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1
    store = PresetStore(config.presets_file)

    try:
        if args.command == "preset":
            save_preset(store, args.name, args.monitors, args.description)
        elif args.command == "list":
            list_presets(store)
        elif args.command == "get":
            print(store.get(args.preset_name, default="all"))
        else:
            with ScreenCapture() as capture:
                if args.command == "detect":
                    detect_monitors(capture)
                elif args.command == "test":
                    test_monitor(capture, args.monitor_num)
                elif args.command == "test-all":
                    test_all_monitors(capture)
                elif args.command == "setup":
                    interactive_setup(capture, store)
    except (TrackerError, ValueError, RuntimeError) as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
