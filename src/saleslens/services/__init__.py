"""External provider clients: language model completion and speech synthesis."""
