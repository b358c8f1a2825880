"""
FastAPI review server for saved capture sessions.

Read-only browsing of session metadata, rendered reviews and analysis
bundles, plus a place to store a summary produced elsewhere.
"""
import os
import re
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import BaseModel
import uvicorn

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import TrackerConfig
from core.errors import MetadataError, PersistenceError, SessionNotFoundError
from core.metadata import MetadataPersister, session_to_dict
from core.review import (
    DEFAULT_SAMPLE_COUNT,
    ReviewGenerator,
    build_analysis_bundle,
    load_summary,
    save_summary,
)

SESSION_ID_PATTERN = re.compile(r"^\d{8}_\d{6}$")


class SummaryBody(BaseModel):
    summary: str


def create_app(captures_dir: Optional[Path] = None) -> FastAPI:
    """Build the review app over one captures directory."""
    if captures_dir is None:
        captures_dir = TrackerConfig.from_env().output_dir
    captures_dir = Path(captures_dir)
    persister = MetadataPersister()

    app = FastAPI(title="Task Tracker Review")

    def _session_dir(session_id: str) -> Path:
        if not SESSION_ID_PATTERN.match(session_id):
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        return captures_dir / session_id

    def _load(session_id: str):
        try:
            return persister.load(_session_dir(session_id))
        except SessionNotFoundError:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        except MetadataError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.get("/api/sessions")
    async def list_sessions():
        """List saved sessions, newest first."""
        sessions = []
        if not captures_dir.is_dir():
            return sessions
        for path in sorted(captures_dir.iterdir(), reverse=True):
            if not (path.is_dir() and SESSION_ID_PATTERN.match(path.name)):
                continue
            try:
                session = persister.load(path)
            except (SessionNotFoundError, MetadataError):
                continue
            sessions.append({
                'session_id': session.session_id,
                'task_name': session.task_name,
                'start_time': session.start_time.isoformat() if session.start_time else None,
                'duration_minutes': round(session.duration_minutes, 1),
                'screenshot_count': len(session.records),
            })
        return sessions

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str):
        """Full metadata for one session."""
        return session_to_dict(_load(session_id))

    @app.get("/api/sessions/{session_id}/review", response_class=PlainTextResponse)
    async def get_review(session_id: str, samples: int = Query(DEFAULT_SAMPLE_COUNT, ge=1)):
        """Render the Markdown review for a session."""
        session = _load(session_id)
        generator = ReviewGenerator(samples)
        return PlainTextResponse(
            generator.render(session, generator.sample(session)),
            media_type="text/markdown",
        )

    @app.get("/api/sessions/{session_id}/bundle")
    async def get_bundle(session_id: str, samples: int = Query(DEFAULT_SAMPLE_COUNT, ge=1)):
        """Sampled images plus metadata and prompt, for an external summarizer."""
        return build_analysis_bundle(_load(session_id), samples)

    @app.get("/api/sessions/{session_id}/summary")
    async def get_summary(session_id: str):
        session = _load(session_id)
        return {"summary": load_summary(session.session_dir)}

    @app.put("/api/sessions/{session_id}/summary")
    async def put_summary(session_id: str, body: SummaryBody):
        """Store a summary produced outside the tracker."""
        session = _load(session_id)
        try:
            save_summary(session.session_dir, body.summary)
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"summary": body.summary}

    @app.get("/api/sessions/{session_id}/images/{name}")
    async def get_image(session_id: str, name: str):
        """Serve one screenshot from the session directory."""
        if os.sep in name or "/" in name or name.startswith(".") or not name.endswith(".png"):
            raise HTTPException(status_code=404, detail="Image not found")
        path = _session_dir(session_id) / name
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(path, media_type="image/png")

    return app


app = create_app()


def main(host: str = "127.0.0.1", port: int = 8000):
    """Run the review server."""
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
