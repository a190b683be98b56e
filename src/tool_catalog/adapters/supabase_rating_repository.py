"""Supabase repository for tool ratings."""

from dataclasses import dataclass

from supabase import Client

from tool_catalog.domain.tools import RatingSummary
from tool_catalog.services.catalog import RatingRepository


@dataclass
class SupabaseRatingRepository(RatingRepository):
    """Supabase-backed rating repository."""

    client: Client

    def upsert_rating(self, tool_id: int, user_id: int, rating: int) -> None:
        """Insert or replace the rating on the (tool_id, user_id) unique key."""
        self.client.table("tool_ratings").upsert(
            {"tool_id": tool_id, "user_id": user_id, "rating": rating},
            on_conflict="tool_id,user_id",
        ).execute()

    def summarize(self, tool_id: int) -> RatingSummary:
        """Return the rating average and count for a tool."""
        response = (
            self.client.table("tool_ratings")
            .select("rating")
            .eq("tool_id", tool_id)
            .execute()
        )
        ratings = [int(row["rating"]) for row in response.data or []]
        if not ratings:
            return RatingSummary(average=0.0, count=0)
        return RatingSummary(average=sum(ratings) / len(ratings), count=len(ratings))
