from visitvibe.models.enums import WishlistPriority
from visitvibe.models.profile import ProfilePreferences, UserProfile
from visitvibe.models.wishlist import WishlistItem


class TestUserProfile:
    def test_default_preferences(self):
        profile = UserProfile(name="Sam")
        assert profile.preferences == ProfilePreferences()
        assert profile.preferences.notifications_enabled is True
        assert profile.preferences.dark_mode is False
        assert profile.tags == []


class TestWishlistItem:
    def test_priority_from_string(self):
        item = WishlistItem(venue_id="v1", venue_name="Spot", priority="low")
        assert item.priority == WishlistPriority.LOW

    def test_defaults(self):
        item = WishlistItem(venue_id="v1", venue_name="Spot")
        assert item.tags == []
        assert item.priority is None
        assert item.added_at is None
