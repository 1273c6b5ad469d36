"""Personal expense tracking API with an AI assistant."""
