"""Client-side tracker: timer, phases, hints and the persisted progress aggregate."""
