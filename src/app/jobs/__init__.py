"""Job lifecycle: records, status transitions, storage and the processing pipeline."""
