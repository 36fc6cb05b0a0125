"""Generation stages, leaves first: patches, segments, connectors, fray,
intersections, emit, then park and lots."""
