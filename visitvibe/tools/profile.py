"""MCP tools for the owner's profile, stats and badges."""

import logging

from fastmcp import FastMCP

from visitvibe.models.profile import UserProfile
from visitvibe.models.visit import Visit
from visitvibe.server import get_db
from visitvibe.tools.checkin import split_tags
from visitvibe.tools.rating_utils import average_overall, rating_breakdown

logger = logging.getLogger(__name__)

EXPLORER_MIN_VENUES = 3
CRITIC_MIN_RATED = 5


def earned_badges(visits: list[Visit]) -> list[tuple[str, str]]:
    """``(name, description)`` for every badge the visit history earns."""
    badges: list[tuple[str, str]] = []
    if len({v.venue_id for v in visits}) >= EXPLORER_MIN_VENUES:
        badges.append(("Explorer", f"Visited {EXPLORER_MIN_VENUES}+ unique venues"))
    if sum(1 for v in visits if v.rating.overall > 0) >= CRITIC_MIN_RATED:
        badges.append(("Critic", f"Rated {CRITIC_MIN_RATED}+ visits"))
    return badges


def register_profile_tools(mcp: FastMCP) -> None:
    """Register profile tools on the MCP server."""

    @mcp.tool
    async def my_profile() -> str:
        """Show your profile with visit stats and earned badges."""
        db = get_db()
        profile = await db.get_profile()
        visits = await db.get_visits()
        wishlist = await db.get_wishlist()
        rated = [v for v in visits if v.rating.overall > 0]

        lines = []
        if profile:
            lines.append(profile.display_name or profile.name)
            if profile.bio:
                lines.append(profile.bio)
            if profile.email:
                lines.append(f"Email: {profile.email}")
            if profile.tags:
                lines.append(f"Custom tags: {', '.join(profile.tags)}")
        else:
            lines.append("No profile yet. Set your name with update_profile.")

        lines.append("")
        lines.append(f"Visits: {len(visits)}")
        lines.append(f"Unique venues: {len({v.venue_id for v in visits})}")
        lines.append(f"Average rating: {average_overall(rated):.1f}" if rated else "Average rating: -")
        lines.append(f"Wishlist: {len(wishlist)}")

        breakdown = rating_breakdown(visits)
        if breakdown:
            lines.append(
                "By category: "
                + ", ".join(f"{k} {v:.1f}" for k, v in breakdown.items())
            )

        badges = earned_badges(visits)
        lines.append("")
        if badges:
            lines.append("Badges:")
            lines.extend(f"- {name}: {desc}" for name, desc in badges)
        else:
            lines.append("No badges yet.")

        if profile:
            prefs = profile.preferences
            lines.append("")
            lines.append(
                "Preferences: "
                f"dark mode {'on' if prefs.dark_mode else 'off'}, "
                f"notifications {'on' if prefs.notifications_enabled else 'off'}, "
                f"share visits {'on' if prefs.share_visits else 'off'}, "
                f"share location {'on' if prefs.share_location else 'off'}"
            )
        return "\n".join(lines)

    @mcp.tool
    async def update_profile(
        name: str | None = None,
        email: str | None = None,
        display_name: str | None = None,
        bio: str | None = None,
        photo: str | None = None,
        tags: str | None = None,
        dark_mode: bool | None = None,
        notifications_enabled: bool | None = None,
        share_visits: bool | None = None,
        share_location: bool | None = None,
    ) -> str:
        """Update your profile. Only the fields you pass are changed.

        Args:
            name: Your name (required the first time).
            email: Contact email.
            display_name: Name shown on your profile.
            bio: A short bio.
            photo: Profile photo URL.
            tags: Comma-separated custom tags to offer when checking in;
                  replaces the current list.
            dark_mode: Prefer dark mode.
            notifications_enabled: Receive notifications.
            share_visits: Share visits with friends.
            share_location: Share location with friends.
        """
        db = get_db()
        profile = await db.get_profile()
        if profile is None:
            if not name or not name.strip():
                return "Please provide your name to create your profile."
            profile = UserProfile(name=name.strip())

        fields = {
            "name": name.strip() if name and name.strip() else None,
            "email": email,
            "display_name": display_name,
            "bio": bio,
            "photo": photo,
            "tags": split_tags(tags) if tags is not None else None,
        }
        prefs = {
            "dark_mode": dark_mode,
            "notifications_enabled": notifications_enabled,
            "share_visits": share_visits,
            "share_location": share_location,
        }
        updates = {k: v for k, v in fields.items() if v is not None}
        pref_updates = {k: v for k, v in prefs.items() if v is not None}
        if pref_updates:
            updates["preferences"] = profile.preferences.model_copy(update=pref_updates)

        await db.save_profile(profile.model_copy(update=updates))
        logger.info("Profile updated: %s", ", ".join(sorted(updates)) or "created")
        return "Profile saved."
