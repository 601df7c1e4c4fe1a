"""HTTP request pipeline: configuration, encoding, progress, transport."""
