"""Authentication, OTP verification and password reset."""
