"""Static reference data: characters, monsters, events and equipment."""
