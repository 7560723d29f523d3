"""YouTube data collection service for Pinpoint Sentiment."""

import logging
from typing import Any, Dict, List, Optional

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..core.config import settings, SentimentConfig, DEFAULT_SENTIMENT_CONFIG
from ..core.constants import CollectorConstants
from ..core.errors import CollectionError
from ..core.models import Source, Subject, RawSourceData
from ..utils.dates import collection_window, to_rfc3339

logger = logging.getLogger(__name__)

# Raised by the HTTP layer when the API cannot be reached at all
TRANSPORT_ERRORS = (httplib2.HttpLib2Error, OSError)


def _count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class YouTubeService:
    """YouTube data collection service using YouTube Data API v3."""

    def __init__(self, youtube=None, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.youtube_api_key
        self.youtube = youtube

    def _client(self):
        if self.youtube is None:
            if not self.api_key:
                raise CollectionError("YOUTUBE_API_KEY environment variable is not set")
            self.youtube = build("youtube", "v3", developerKey=self.api_key, cache_discovery=False)
            logger.info("YouTube client initialized successfully")
        return self.youtube

    def search_videos(self, query: str, published_after: str, max_results: int) -> List[str]:
        """Search for video ids related to the query."""
        try:
            search_response = self._client().search().list(
                q=query,
                part="snippet",
                maxResults=max_results,
                type="video",
                order="relevance",
                publishedAfter=to_rfc3339(published_after),
            ).execute()
        except HttpError as e:
            raise CollectionError(f"YouTube search API error ({e.resp.status}): {e}") from e
        except TRANSPORT_ERRORS as e:
            raise CollectionError(f"YouTube search request failed: {e}") from e

        video_ids = [item.get("id", {}).get("videoId") for item in search_response.get("items", [])]
        video_ids = [video_id for video_id in video_ids if video_id]
        logger.info(f"Found {len(video_ids)} videos for query: {query}")
        return video_ids

    def get_videos(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        """Fetch snippet and statistics for the given videos."""
        try:
            response = self._client().videos().list(
                part="snippet,statistics",
                id=",".join(video_ids),
            ).execute()
        except HttpError as e:
            raise CollectionError(f"YouTube videos API error ({e.resp.status}): {e}") from e
        except TRANSPORT_ERRORS as e:
            raise CollectionError(f"YouTube videos request failed: {e}") from e

        items = response.get("items", [])
        if not items:
            raise CollectionError("No video metadata returned")
        return items

    def get_video_comments(self, video_id: str, max_comments: int) -> List[str]:
        """Get top-relevance comment texts for a video.

        Any API error (403 when comments are disabled, most commonly) ends
        pagination for this video and keeps what was already gathered.
        Losing the connection raises CollectionError.
        """
        comments: List[str] = []
        next_page_token = None

        while len(comments) < max_comments:
            try:
                response = self._client().commentThreads().list(
                    part="snippet",
                    videoId=video_id,
                    maxResults=CollectorConstants.YOUTUBE_COMMENTS_PAGE_SIZE,
                    order="relevance",
                    textFormat="plainText",
                    pageToken=next_page_token,
                ).execute()
            except HttpError as e:
                if e.resp.status == 403:
                    logger.warning(f"Comments disabled or inaccessible for video {video_id}")
                else:
                    logger.warning(f"YouTube comments fetch failed for video {video_id}: {e}")
                break
            except TRANSPORT_ERRORS as e:
                raise CollectionError(f"YouTube comments request failed for video {video_id}: {e}") from e

            items = response.get("items", [])
            if not items:
                break

            for item in items:
                text = item.get("snippet", {}).get("topLevelComment", {}).get("snippet", {}).get("textDisplay")
                if text:
                    comments.append(text)
                    if len(comments) >= max_comments:
                        break

            next_page_token = response.get("nextPageToken")
            if not next_page_token:
                break

        logger.debug(f"Retrieved {len(comments)} comments for video {video_id}")
        return comments

    def collect(self, subject: Subject, config: SentimentConfig = DEFAULT_SENTIMENT_CONFIG) -> RawSourceData:
        """Collect one text block per relevant video: title, description, stats and top comments."""
        window_start, window_end = collection_window(config.lookback_months)
        query = subject.search_query or f'{subject.name} OR "{subject.name} AI"'
        logger.info(f"Collecting YouTube data for '{subject.name}' (query: {query})")

        metadata: Dict[str, Any] = {
            "total_items": 0,
            "total_views": 0,
            "total_likes": 0,
            "total_comments": 0,
            "window_start": window_start,
            "window_end": window_end,
        }

        video_ids = self.search_videos(query, window_start, config.youtube_max_videos)
        if not video_ids:
            logger.warning(f"No YouTube videos found for {subject.name}")
            return RawSourceData(source=Source.YOUTUBE, subject_id=subject.id, text_blocks=[], metadata=metadata)

        text_blocks = []
        for video in self.get_videos(video_ids):
            snippet = video.get("snippet", {})
            stats = video.get("statistics", {})
            views = _count(stats.get("viewCount"))
            likes = _count(stats.get("likeCount"))
            comment_count = _count(stats.get("commentCount"))

            metadata["total_views"] += views
            metadata["total_likes"] += likes
            metadata["total_comments"] += comment_count
            metadata["total_items"] += 1

            comments = self.get_video_comments(video["id"], config.youtube_max_comments_per_video)
            text_blocks.append("\n\n".join([
                f"VIDEO: {snippet.get('title', '')}",
                f"DESCRIPTION:\n{snippet.get('description', '')}",
                f"STATS: {views:,} views, {likes:,} likes, {comment_count:,} comments",
                "TOP COMMENTS:\n" + "\n---\n".join(comments),
            ]))

        logger.info(f"Collected {len(text_blocks)} YouTube videos for {subject.name}")
        return RawSourceData(source=Source.YOUTUBE, subject_id=subject.id, text_blocks=text_blocks, metadata=metadata)
