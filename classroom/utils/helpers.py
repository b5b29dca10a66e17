from datetime import datetime, timezone
from typing import Optional
import re

def get_utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)

def utc_now() -> datetime:
    """Current UTC time without tzinfo, the form every timestamp column stores"""
    return get_utc_now().replace(tzinfo=None)

def as_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime for storage and comparison

    Aware values are converted to UTC and stripped of tzinfo; naive values
    are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def format_datetime(dt: datetime) -> str:
    """Format datetime to ISO format with timezone"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()

def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename by removing invalid characters
    
    Args:
        filename: Original filename
        
    Returns:
        Sanitized filename
    """
    # Remove invalid characters
    filename = re.sub(r'[<>:"/\\|?*]', '', filename)
    # Remove control characters
    filename = "".join(char for char in filename if ord(char) >= 32)
    filename = filename.strip().replace(" ", "_")
    return filename or "file"
