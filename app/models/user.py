"""Account models."""
from pydantic import BaseModel


class UserRecord(BaseModel):
    """Account as persisted by the user store."""
    id: int
    email: str
    password_hash: str

    def to_response(self) -> "UserResponse":
        return UserResponse(id=self.id, email=self.email)


class UserResponse(BaseModel):
    """Public view of an account; never carries the password hash."""
    id: int
    email: str
