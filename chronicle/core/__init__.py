"""Calendar primitives: calendar shapes, in-fiction dates and the epoch-minute axis."""
