"""FocusArena API: gamified study-tracking backend."""
