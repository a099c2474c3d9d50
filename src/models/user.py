"""User models - marketplace profile row and the authenticated session context."""

from typing import Any, Optional
from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Row in the users table, created on first sign-in."""
    user_id: str = Field(..., description="Auth user ID")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    timestamp: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """Identity of the acting user, passed explicitly into every workflow."""
    user_id: str = Field(..., description="Auth user ID")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    access_token: Optional[str] = Field(None, repr=False, description="Session access token")

    @classmethod
    def from_auth_user(cls, user: Any, access_token: Optional[str] = None) -> "AuthenticatedUser":
        """Build from a Supabase auth user object."""
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            user_id=user.id,
            name=metadata.get("full_name") or metadata.get("name"),
            email=getattr(user, "email", None),
            access_token=access_token,
        )

    def to_profile(self) -> UserProfile:
        return UserProfile(user_id=self.user_id, name=self.name, email=self.email)


class OAuthStart(BaseModel):
    """Provider URL plus the PKCE verifier the callback must present."""
    url: str = Field(..., description="Provider authorization URL")
    code_verifier: Optional[str] = Field(None, repr=False, description="PKCE code verifier")
