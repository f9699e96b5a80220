"""
HTTP client helpers for consumers of the recipe-share API.

``ReviewApiClient`` keeps a per-session cache of rating stats so a recipe's
badge can be rendered many times with one fetch. The cache has no expiry: an
entry is only dropped when this client creates, updates or deletes a review
of that recipe. Reviews written by other clients are not seen until then.

``SavedRecipesState`` tracks which recipes the user has saved and flips the
local state before the server answers, undoing the flip if the request fails.
"""

from typing import Dict, Iterable, Optional, Set

import httpx

from .logger import get_logger
from .reviews import round_rating

logger = get_logger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def recompute_stats(reviews: Iterable[dict]) -> Dict[str, float]:
    """Aggregate a list of review dicts the same way the server does."""
    ratings = [r["rating"] for r in reviews]
    if not ratings:
        return {"averageRating": 0, "totalReviews": 0}
    return {
        "averageRating": round_rating(sum(ratings) / len(ratings)),
        "totalReviews": len(ratings),
    }


class StatsCache:
    """Recipe id -> last fetched ``{averageRating, totalReviews}``."""

    def __init__(self):
        self._entries: Dict[str, dict] = {}

    def get(self, recipe_id: str) -> Optional[dict]:
        return self._entries.get(recipe_id)

    def set(self, recipe_id: str, stats: dict) -> None:
        self._entries[recipe_id] = stats

    def invalidate(self, recipe_id: str) -> None:
        self._entries.pop(recipe_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, recipe_id) -> bool:
        return recipe_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class _ApiClient:
    def __init__(self, http: httpx.Client, token: Optional[str] = None):
        self.http = http
        self.token = token

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase)
        return body


class ReviewApiClient(_ApiClient):
    def __init__(self, http: httpx.Client, token: Optional[str] = None, cache: Optional[StatsCache] = None):
        super().__init__(http, token)
        self.cache = cache if cache is not None else StatsCache()

    def get_recipe_reviews(self, recipe_id: str, page: int = 1, limit: Optional[int] = None) -> dict:
        params = {"page": page}
        if limit is not None:
            params["limit"] = limit
        return self._request("GET", f"/api/reviews/recipe/{recipe_id}", params=params)

    def get_recipe_review_stats(self, recipe_id: str) -> dict:
        cached = self.cache.get(recipe_id)
        if cached is not None:
            return cached
        body = self.get_recipe_reviews(recipe_id)
        stats = body.get("stats") or {}
        result = {
            "averageRating": stats.get("averageRating", 0),
            "totalReviews": stats.get("totalReviews", len(body.get("reviews", []))),
        }
        self.cache.set(recipe_id, result)
        return result

    def create_review(self, recipe_id: str, rating: int, comment: str) -> dict:
        body = self._request(
            "POST", f"/api/reviews/recipe/{recipe_id}",
            json={"rating": rating, "comment": comment},
        )
        self.cache.invalidate(recipe_id)
        return body["review"]

    def update_review(self, review_id: str, rating: Optional[int] = None,
                      comment: Optional[str] = None, recipe_id: Optional[str] = None) -> dict:
        payload = {}
        if rating is not None:
            payload["rating"] = rating
        if comment is not None:
            payload["comment"] = comment
        body = self._request("PUT", f"/api/reviews/{review_id}", json=payload)
        review = body["review"]
        self.cache.invalidate(recipe_id or review["recipeId"])
        return review

    def delete_review(self, review_id: str, recipe_id: str) -> bool:
        self._request("DELETE", f"/api/reviews/{review_id}")
        self.cache.invalidate(recipe_id)
        return True


class SavedRecipesState(_ApiClient):
    def __init__(self, http: httpx.Client, token: Optional[str] = None):
        super().__init__(http, token)
        self.saved_ids: Set[str] = set()

    def load(self) -> Set[str]:
        body = self._request("GET", "/api/recipes/saved")
        self.saved_ids = {r["id"] for r in body.get("data", [])}
        return self.saved_ids

    def is_saved(self, recipe_id: str) -> bool:
        return recipe_id in self.saved_ids

    def _apply(self, recipe_id: str, saved: bool) -> None:
        if saved:
            self.saved_ids.add(recipe_id)
        else:
            self.saved_ids.discard(recipe_id)

    def toggle(self, recipe_id: str) -> bool:
        """Flip the saved state of a recipe and return the new state.

        The local set changes before the request is sent. If the server
        rejects the change the previous state is restored and the
        ``ApiError`` is re-raised.
        """
        was_saved = self.is_saved(recipe_id)
        self._apply(recipe_id, not was_saved)
        try:
            if was_saved:
                self._request("DELETE", f"/api/recipes/{recipe_id}/save")
            else:
                self._request("POST", f"/api/recipes/{recipe_id}/save")
        except ApiError as e:
            logger.warning("Reverting saved state of %s: %s", recipe_id, e.message)
            self._apply(recipe_id, was_saved)
            raise
        return not was_saved
