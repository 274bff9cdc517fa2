"""HackHub – hackathon lifecycle backend."""
