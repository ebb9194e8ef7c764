"""Chat: quota-gated question answering and history."""
