"""Application-level conversational client."""

from assistants_gateway.clients.models import ClientOptions


class ChatClient:
    """Carries per-group parameter policy and title settings for a conversation."""

    def __init__(self, api_key: str, options: ClientOptions):
        self.api_key = api_key
        self.options = options

    @property
    def azure(self) -> bool:
        """True for structured Azure auth, False for serverless/header auth."""
        return self.options.azure is not None

    @property
    def should_title(self) -> bool:
        return self.options.title_convo

    def title_options(self) -> dict:
        return {
            "model": self.options.title_model or self.options.model,
            "method": self.options.title_method,
        }

    def build_payload(self, payload: dict) -> dict:
        """Apply model default, add/drop params and forced prompt mode to a request."""
        result = dict(payload)
        if self.options.model and not result.get("model"):
            result["model"] = self.options.model

        result.update(self.options.add_params)
        for param in self.options.drop_params:
            result.pop(param, None)

        if self.options.force_prompt and "messages" in result:
            messages = result.pop("messages")
            lines = [f"{m.get('role', 'user')}: {m.get('content', '')}" for m in messages]
            result["prompt"] = "\n".join(lines) + "\nassistant:"

        return result
