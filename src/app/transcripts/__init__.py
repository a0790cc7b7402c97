"""Caption transcript parsing -- raw caption markup to speaker-attributed entries."""
