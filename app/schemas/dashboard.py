from typing import Dict, List

from pydantic import BaseModel

from app.models.user import UserRole
from app.schemas.appointment import AppointmentView


class DashboardView(BaseModel):
    """Summary counts for one user plus the appointments that need their attention."""

    user_id: int
    user_name: str
    role: UserRole
    statistics: Dict[str, int]
    recent_activity: List[AppointmentView]
