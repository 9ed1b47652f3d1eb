"""FastAPI application entrypoint for codeinfra service mode."""

from __future__ import annotations

import asyncio
import re
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import soupsieve
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..changelog import Commit, ReleaseOptions, generate_changelog
from ..config import load_changelog_config, parse_changelog_config
from ..errors import ConfigError
from ..links import CrawlOptions, CrawlResult, crawl
from ..links.parser import links_selector

Crawler = Callable[[CrawlOptions], Awaitable[CrawlResult]]


class ChangelogRequest(BaseModel):
    commits: List[Dict[str, Any]]
    version: str
    last_release: str
    release: str
    release_date: Optional[date] = None
    config_path: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    package_versions: Dict[str, str] = Field(default_factory=dict)


class ContributorsModel(BaseModel):
    team: List[str]
    community: List[str]
    all: List[str]


class ChangelogResponse(BaseModel):
    markdown: str
    contributors: ContributorsModel


class BrokenLinksRequest(BaseModel):
    host: str
    seed_urls: List[str] = Field(default_factory=lambda: ["/"])
    ignored_paths: List[str] = Field(default_factory=list)
    ignored_content: List[str] = Field(default_factory=list)
    ignored_targets: Optional[List[str]] = None
    known_targets: Dict[str, List[str]] = Field(default_factory=dict)
    known_targets_download_url: List[str] = Field(default_factory=list)
    concurrency: int = Field(default=4, ge=1)


class IssueModel(BaseModel):
    kind: str
    message: str
    src: Optional[str] = None
    text: Optional[str] = None
    href: str


class BrokenLinksResponse(BaseModel):
    total_links: int
    broken_links: int
    broken_targets: int
    issues: List[IssueModel]


class HealthResponse(BaseModel):
    status: str


def create_app(crawler: Crawler = crawl) -> FastAPI:
    """Create the FastAPI application exposing codeinfra operations."""
    app = FastAPI(title="codeinfra Service", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/changelog", response_model=ChangelogResponse)
    async def changelog(payload: ChangelogRequest) -> ChangelogResponse:
        if payload.config is not None:
            config = parse_changelog_config(payload.config, allow_callables=False)
        elif payload.config_path:
            config = load_changelog_config(Path(payload.config_path))
        else:
            raise ConfigError("Either 'config' or 'config_path' is required")

        commits = [Commit.from_dict(item) for item in payload.commits]
        options = ReleaseOptions(
            version=payload.version,
            last_release=payload.last_release,
            release=payload.release,
            date=payload.release_date or date.today(),
        )
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None,
            lambda: generate_changelog(
                commits, config, options, package_versions=payload.package_versions
            ),
        )
        return ChangelogResponse(
            markdown=result.markdown,
            contributors=ContributorsModel(
                team=result.contributors.team,
                community=result.contributors.community,
                all=result.contributors.all,
            ),
        )

    @app.post("/broken-links", response_model=BrokenLinksResponse)
    async def broken_links(payload: BrokenLinksRequest) -> BrokenLinksResponse:
        options = CrawlOptions(
            host=payload.host,
            seed_urls=payload.seed_urls,
            ignored_paths=[re.compile(pattern) for pattern in payload.ignored_paths],
            ignored_content=payload.ignored_content,
            known_targets={url: set(ids) for url, ids in payload.known_targets.items()},
            known_targets_download_url=payload.known_targets_download_url,
            concurrency=payload.concurrency,
        )
        if payload.ignored_targets is not None:
            options.ignored_targets = set(payload.ignored_targets)
        soupsieve.compile(links_selector(options.ignored_content))
        result = await crawler(options)
        return BrokenLinksResponse(
            total_links=len(result.links),
            broken_links=result.broken_links,
            broken_targets=result.broken_targets,
            issues=[
                IssueModel(
                    kind=issue.kind,
                    message=issue.message,
                    src=issue.link.src,
                    text=issue.link.text,
                    href=issue.link.href,
                )
                for issue in result.issues
            ],
        )

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(re.error)
    async def pattern_error_handler(_: Any, exc: re.error) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": f"Invalid pattern: {exc}"})

    @app.exception_handler(soupsieve.SelectorSyntaxError)
    async def selector_error_handler(_: Any, exc: soupsieve.SelectorSyntaxError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": f"Invalid selector: {exc}"})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
