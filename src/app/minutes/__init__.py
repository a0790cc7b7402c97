"""Minutes generation: chunking, topic analysis, timeline, global summary and assembly."""
