"""workout-player: play AI-generated home-training sessions from the terminal."""

__version__ = "0.1.0"
