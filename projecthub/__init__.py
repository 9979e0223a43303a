"""projecthub - jobs, tasks and comments with notification side effects."""
