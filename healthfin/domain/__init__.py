"""Value objects and error types shared by every engine component."""
