"""
Settings models for gitpub.

The core never reads global configuration; these explicit structures are
built by the configuration manager and passed into parsers, the formatter,
the storage clients and the publisher.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PublishSettings(BaseModel):
    """
    Site-level settings that shape paths, URLs and documents.
    """
    
    me: str = Field(
        default="https://example.com/",
        description="The site's public origin, used to build and resolve post URLs"
    )
    
    content_dir: str = Field(
        default="src",
        description="Repository directory holding post documents"
    )
    
    media_dir: str = Field(
        default="uploads",
        description="Repository directory holding uploaded media"
    )
    
    filename_full_date: bool = Field(
        default=False,
        description="Prefix slugs with YYYY-MM-DD (Jekyll style filenames)"
    )
    
    permanent_delete: bool = Field(
        default=False,
        description="Delete files outright instead of marking them deleted"
    )
    
    media_endpoint: Optional[str] = Field(
        default=None,
        description="Public URL of the media endpoint advertised by q=config"
    )
    
    syndicate_to: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Syndication targets advertised by q=config and q=syndicate-to"
    )
    
    max_concurrent_blobs: int = Field(
        default=4,
        description="Upper bound on blobs created in parallel by one commit"
    )
    
    @property
    def root(self) -> str:
        """Content directory without a trailing slash."""
        return self.content_dir.rstrip("/")
    
    @property
    def media_root(self) -> str:
        """Media directory without a trailing slash."""
        return self.media_dir.rstrip("/")
    
    @property
    def origin(self) -> str:
        """Site origin without a trailing slash."""
        return self.me.rstrip("/")


class GitHubSettings(BaseModel):
    """
    Connection settings for the GitHub storage backend.
    """
    
    user: str = Field(default="", description="Repository owner")
    repo: str = Field(default="", description="Repository name")
    token: Optional[str] = Field(default=None, description="Bearer token for the API")
    branch: str = Field(default="main", description="Branch posts are committed to")
    api_url: str = Field(default="https://api.github.com", description="API base URL")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    author_name: Optional[str] = Field(default=None, description="Committer name")
    author_email: Optional[str] = Field(default=None, description="Committer email")
    
    @property
    def committer(self) -> Optional[Dict[str, str]]:
        """Committer payload, only when both name and email are configured."""
        if self.author_name and self.author_email:
            return {"name": self.author_name, "email": self.author_email}
        return None


class EnrichmentSettings(BaseModel):
    """
    Settings for best-effort enrichment (page titles, static maps).
    """
    
    fetch_like_titles: bool = Field(
        default=True,
        description="Use the liked page's title as the post name"
    )
    
    mapbox_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token; checkin maps are skipped without it"
    )
    
    map_zoom: int = Field(default=14, description="Static map zoom level")
    map_width: int = Field(default=748, description="Static map width in pixels")
    map_height: int = Field(default=420, description="Static map height in pixels")
    map_styles: List[str] = Field(
        default_factory=lambda: ["dark-v11", "light-v11"],
        description="Mapbox styles fetched for each checkin (dark first, light second)"
    )
    timeout: float = Field(default=10.0, description="Request timeout in seconds")
