"""WTS · Whisper Tutor Service."""
