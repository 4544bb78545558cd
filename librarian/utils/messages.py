"""
User-friendly messages for API outcomes.
Errors are phrased for people, not for developers.
"""

from typing import Any

import httpx

from librarian.models import ApiResponse
from librarian.services.api_client import SessionExpiredError
from librarian.services.http_client import TransportError

GENERIC_ERROR = "Something went wrong. Please try again later."

STATUS_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Invalid email or password. Please try again.",
    403: "Access denied. Your account may be pending approval or suspended.",
    404: "The requested resource was not found.",
    409: "This email is already registered. Please use a different email or try logging in.",
    422: "Please check your input and try again.",
    429: "Too many requests. Please wait a moment and try again.",
    500: "Server error. Please try again later or contact support.",
    503: "Service temporarily unavailable. Please try again later.",
}

SUCCESS_MESSAGES = {
    "login": "Welcome back! You have been successfully logged in.",
    "register": "Account created successfully! Please wait for admin approval.",
    "logout": "You have been successfully logged out.",
    "profile_update": "Your profile has been updated successfully.",
    "password_change": "Your password has been changed successfully.",
    # Users
    "user_created": "User created successfully.",
    "user_updated": "User updated successfully.",
    "user_deleted": "User deleted successfully.",
    "user_approved": "User approved successfully.",
    "user_rejected": "User rejected successfully.",
    # Libraries
    "library_created": "Library created successfully.",
    "library_updated": "Library updated successfully.",
    "library_deleted": "Library deleted successfully.",
    "admin_assigned": "Admin assigned to library successfully.",
    "admin_removed": "Admin removed from library successfully.",
    # Books
    "book_created": "Book added successfully.",
    "book_updated": "Book updated successfully.",
    "book_deleted": "Book deleted successfully.",
    "copy_created": "Book copy added successfully.",
    "copy_updated": "Book copy updated successfully.",
    "copy_deleted": "Book copy deleted successfully.",
    # Borrowing
    "request_created": "Borrow request submitted successfully.",
    "request_approved": "Borrow request approved successfully.",
    "request_rejected": "Borrow request rejected successfully.",
    "request_cancelled": "Borrow request cancelled successfully.",
    "book_returned": "Book returned successfully.",
    # CSV
    "csv_imported": "Books imported successfully.",
    "csv_exported": "Books exported successfully.",
    "template_downloaded": "CSV template downloaded successfully.",
    # Reports
    "report_generated": "Report generated successfully.",
    "report_exported": "Report exported successfully.",
}

INFO_MESSAGES = {
    "pending_approval": "Your account is pending approval. You will be notified once it's approved.",
    "account_suspended": "Your account has been suspended. Please contact an administrator.",
    "session_expired": "Your session has expired. Please log in again.",
    "no_data": "No data available to display.",
    "loading": "Loading data, please wait...",
    "search_no_results": "No results found for your search. Try different keywords.",
    "permission_required": "You don't have permission to perform this action.",
    "confirmation_required": "Please confirm this action to continue.",
    "data_updated": "Data has been updated. Refresh to see changes.",
}


def _transport_message(error: TransportError) -> str:
    cause = error.cause
    if isinstance(cause, httpx.TimeoutException):
        return "Request timed out. The server is taking longer than usual to respond. Please try again."
    if isinstance(cause, httpx.NetworkError):
        return "Unable to connect to the server. The server might be starting up. Please wait a moment and try again."
    return GENERIC_ERROR


def get_error_message(error: Any) -> str:
    """Turn an ApiResponse or a client error into a message for the user."""
    if isinstance(error, SessionExpiredError):
        return INFO_MESSAGES["session_expired"]
    if isinstance(error, TransportError):
        return _transport_message(error)
    if not isinstance(error, ApiResponse):
        return GENERIC_ERROR

    # Validation errors carry per-field details
    if error.details:
        first = error.details[0]
        if isinstance(first, dict) and first.get("msg"):
            return first["msg"]
        return error.error or "Validation failed"

    if error.error:
        return error.error

    return STATUS_MESSAGES.get(error.status_code, GENERIC_ERROR)


def get_success_message(action: str) -> str:
    return SUCCESS_MESSAGES.get(action, "Operation completed successfully.")


def get_info_message(action: str) -> str:
    return INFO_MESSAGES.get(action, "Please check the information and try again.")
