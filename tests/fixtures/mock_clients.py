import asyncio


class FakeGenerationBackend:
    """Generation backend double that records every call."""

    def __init__(self, response="hi", models=None, error=None, list_error=None):
        self.response = response
        self.models = ["llama3.2:3b", "mistral:7b"] if models is None else models
        self.error = error
        self.list_error = list_error
        self.generate_calls = []
        self.list_calls = 0

    @property
    def total_calls(self):
        return len(self.generate_calls) + self.list_calls

    async def list_models(self):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.models)

    async def generate(self, model, prompt, options):
        self.generate_calls.append({"model": model, "prompt": prompt, "options": options})
        if self.error:
            raise self.error
        return {"response": self.response}


class FakeMemoryService:
    """Memory service double with switchable failures."""

    def __init__(self, enrichment=None, enrich_error=None, store_error=None):
        self.enrichment = enrichment
        self.enrich_error = enrich_error
        self.store_error = store_error
        self.enrich_calls = []
        self.store_calls = []

    @property
    def total_calls(self):
        return len(self.enrich_calls) + len(self.store_calls)

    async def enrich_prompt(self, text, options):
        self.enrich_calls.append({"text": text, "options": options})
        if self.enrich_error:
            raise self.enrich_error
        if self.enrichment is not None:
            return self.enrichment
        return {"enriched_prompt": text, "context_used": False, "context_length": 0}

    async def store_conversation_turn(self, prompt, response):
        self.store_calls.append((prompt, response))
        if self.store_error:
            raise self.store_error


class FakeSuggestionService:
    """Suggestion service double; ``delay`` keeps a call in flight."""

    def __init__(self, suggestions_for=None, error=None, delay=0.0):
        self.suggestions_for = suggestions_for or (lambda text: [f"{text.strip()} please", f"{text.strip()} now"])
        self.error = error
        self.delay = delay
        self.calls = []

    async def get_suggestions(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.suggestions_for(text)
