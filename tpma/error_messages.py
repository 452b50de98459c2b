"""User-facing wording for error strings returned by the TPMA API."""
from typing import Optional

ERROR_MESSAGES = {
    "You already have a pending lesson plan. Please submit or delete it first.":
        "You already have a pending lesson plan. Please submit or delete it first.",
    "Invalid time format, expected HH:MM": "Please enter times in HH:MM format (e.g., 09:00).",
    "End time must be after start time": "End time must be later than start time.",
    "Invalid date format, expected YYYY-MM-DD": "Please enter date in YYYY-MM-DD format.",
    "Missing required fields": "Please fill in all required fields.",
    "Invalid or expired token": "Your session has expired. Please log in again.",
    "Unauthorized": "You are not authorized to perform this action.",
    "Network Error": "Failed to connect to the server. Please check your network or try again later.",
    "Lesson plan not found or you lack permission": "Lesson plan not found or you lack permission.",
    "Lesson plan ID and content are required": "Lesson plan ID and content are required.",
    "Failed to generate PDF": "Failed to generate PDF. Please try again.",
    "Query is required": "Please provide a lesson plan prompt.",
    "Supervisor not found": "The specified supervisor could not be found.",
    "Unauthorized: You can only access your own profile":
        "You are not authorized to view this supervisor's profile.",
    "Lesson plan not found or not assigned to you":
        "The lesson plan was not found or is not assigned to you.",
    "Only approved lesson plans can be scheduled for observation":
        "Only approved lesson plans can be scheduled for observation.",
    "Trainee not found": "The specified trainee could not be found.",
    "Invalid time format. Use HH:MM or HH:MM:SS": "Please enter times in HH:MM format (e.g., 09:00).",
    "Invalid date format. Use YYYY-MM-DD": "Please enter date in YYYY-MM-DD format.",
    "Observation not found or not assigned to you":
        "The observation was not found or is not assigned to you.",
    "Feedback can only be submitted for completed observations":
        "Feedback can only be submitted for completed observations.",
    "Score must be between 0 and 10": "Observation score must be between 0 and 10.",
    "Status must be APPROVED or REJECTED": "Review status must be APPROVED or REJECTED.",
    "Missing required fields: status, comments":
        "Please provide both status and comments for the review.",
}


def friendly_message(raw: Optional[str], fallback: str = "An unexpected error occurred") -> str:
    """Map a raw API error to its user-facing wording; unknown messages pass through verbatim."""
    if not raw:
        return fallback
    return ERROR_MESSAGES.get(raw, raw)
