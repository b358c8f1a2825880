"""
Launch the session review server.

Usage:
    python scripts/run_webapp.py

Then open http://127.0.0.1:8000/api/sessions in your browser.
Set TASK_TRACKER_OUTPUT_DIR to browse captures outside ./task_captures.
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from api.app import main

if __name__ == "__main__":
    print("=" * 60)
    print("  Task Tracker Review Server")
    print("=" * 60)
    print()
    print("Open http://127.0.0.1:8000/api/sessions in your browser")
    print()
    print("Endpoints:")
    print("  - /api/sessions                       saved sessions")
    print("  - /api/sessions/<id>/review           sampled Markdown review")
    print("  - /api/sessions/<id>/bundle           images + prompt for a summarizer")
    print("  - /api/sessions/<id>/summary          stored summary (GET/PUT)")
    print()
    main()
