"""Translation between OpenAI chat completions and codex /responses, including tool-name shortening."""