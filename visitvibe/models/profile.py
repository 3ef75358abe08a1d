from pydantic import BaseModel, ConfigDict


class ProfilePreferences(BaseModel):
    dark_mode: bool = False
    notifications_enabled: bool = True
    share_visits: bool = False
    share_location: bool = False


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str | None = None
    display_name: str | None = None
    bio: str | None = None
    photo: str | None = None
    tags: list[str] = []
    preferences: ProfilePreferences = ProfilePreferences()
