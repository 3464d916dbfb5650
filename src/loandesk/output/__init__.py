"""Output layer — Rich (human) and JSON renderings of ServiceResult."""
