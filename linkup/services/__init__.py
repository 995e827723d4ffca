"""Account, post and comment services plus outbound email."""
