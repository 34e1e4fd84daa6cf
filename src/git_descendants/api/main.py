from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pathlib import Path
from typing import List
import os

from git_descendants.api.service import GitService
from git_descendants.api.schemas import CommitResponse, GraphEdge, GraphResponse, HealthResponse
from git_descendants.errors import GitDescendantsError

import logging

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Git Descendants API")

# Allow CORS
# In production, set ALLOWED_ORIGINS to a comma-separated list of domains
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "*")
allowed_origins = [origin.strip() for origin in allowed_origins_env.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# By default look in CWD. Can be overridden by env var GIT_DESCENDANTS_REPO.
service = GitService(Path(os.getenv("GIT_DESCENDANTS_REPO", ".")))


@app.exception_handler(GitDescendantsError)
async def store_error_handler(request: Request, exc: GitDescendantsError):
    logger.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/api/graph", response_model=GraphResponse)
def get_graph(all: bool = False):
    """Adjacency map of the commit graph."""
    return service.get_graph(all)


@app.get("/api/graph/edges", response_model=List[GraphEdge])
def get_edges(all: bool = False):
    """Every parent -> child edge of the commit graph."""
    return service.get_edges(all)


@app.get("/api/roots", response_model=List[CommitResponse])
def get_roots():
    return service.get_roots()


@app.get("/api/children/{revision:path}", response_model=List[CommitResponse])
def get_children(revision: str, all: bool = False):
    """Children of a revision (id, short id, ref name, ``main~2``...)."""
    children = service.get_children(revision, all)
    if children is None:
        raise HTTPException(status_code=404, detail=f"Revision {revision} not found")
    return children


@app.get("/api/lost", response_model=List[CommitResponse])
def get_lost():
    """Commits that no reference can reach, oldest first."""
    return service.get_lost()


@app.post("/api/refresh")
def refresh():
    service.refresh()
    return {"status": "ok"}


@app.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(status="ok", repo=str(service.git_dir))
