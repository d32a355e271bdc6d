"""Core building blocks: shell runner, errors, retry policy, workdir."""
