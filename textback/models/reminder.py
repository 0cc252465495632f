from pydantic import BaseModel

from textback.models.fields import REMINDER_SENT_TEMPLATE


class ReminderWindow(BaseModel):
    """A reminder that fires `hours_ahead` hours before an appointment"""

    label: str
    hours_ahead: int

    class Config:
        frozen = True

    @property
    def sent_field(self) -> str:
        return REMINDER_SENT_TEMPLATE.format(label=self.label)
