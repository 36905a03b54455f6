"""Client-side controllers for the race calendar."""
