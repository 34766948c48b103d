"""Shared fakes for the test suite."""
from gelaboca.app.errors import CompletionError, EmbeddingError
from gelaboca.data.models import Product

DIM = 4

KEYWORD_VECTORS = {
    "chocolate": [1.0, 0.0, 0.0, 0.0],
    "morango": [0.0, 1.0, 0.0, 0.0],
    "milkshake": [0.0, 0.0, 1.0, 0.0],
}


def make_product(pid, name, price=10.0, category="Sorvetes", active=True, promotional=False,
                 embedding=None, description=""):
    return Product(
        id=pid,
        name=name,
        category=category,
        code=pid.upper(),
        price=price,
        description=description or f"{name} da casa",
        ingredients=["Leite"],
        addons=["Calda"],
        active=active,
        promotional=promotional,
        text_embedding=embedding,
    )


def match_for(product, score=1.0):
    """Vector-index match carrying the product as metadata."""
    return {"id": product.id, "score": score, "metadata": product.index_metadata()}


class FakeEmbedding:
    """Keyword embedding: the first known keyword in the text picks the vector."""

    dimensions = DIM

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def generate_embedding(self, text):
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service down")
        lowered = text.lower()
        for word, vector in KEYWORD_VECTORS.items():
            if word in lowered:
                return list(vector)
        return [0.0, 0.0, 0.0, 1.0]

    def zero_vector(self):
        return [0.0] * DIM


PURCHASE_WORDS = ("quero", "tem ", "gostaria", "sorvete", "sabor", "chocolate", "morango", "milkshake")


class FakeGeneration:
    """
    Stand-in for the completion endpoint.

    Recognises each pipeline prompt by its closing line and answers the way
    a well-behaved model would. ``fail`` makes every call raise;
    ``fail_on`` names the steps that raise.
    """

    def __init__(self, fail=False, fail_on=(), selection=None, reply=None):
        self.fail = fail
        self.fail_on = set(fail_on)
        self.selection = selection
        self.reply = reply
        self.calls = []

    def _step(self, messages):
        content = messages[-1]["content"]
        if content.endswith("Mensagem ajustada:"):
            return "rewrite"
        if content.endswith("ID do produto escolhido:"):
            return "select"
        if content.endswith("Resposta do GelinhIA:"):
            return "product_reply"
        return "general_reply"

    def complete(self, messages, max_tokens=200, temperature=0.7):
        step = self._step(messages)
        self.calls.append((step, messages, max_tokens, temperature))
        if self.fail or step in self.fail_on:
            raise CompletionError(f"{step} failed")
        prompt = messages[-1]["content"]
        if step == "rewrite":
            message = prompt.split('Mensagem atual do usuário: "', 1)[1].rsplit('"', 1)[0]
            return f"O cliente quer: {message}"
        if step == "select":
            if self.selection is not None:
                return self.selection
            return self._select(prompt)
        if self.reply is not None:
            return self.reply
        if step == "product_reply":
            return "Ótima escolha! 😋 Posso te ajudar com mais alguma coisa?"
        return "Abrimos todos os dias das 12h às 22h! 🍦"

    def _select(self, prompt):
        message = prompt.split('Mensagem atual: "', 1)[1].split('"', 1)[0].lower()
        listing = prompt.split("Produtos similares disponíveis:\n", 1)[1]
        lines = [line for line in listing.splitlines() if line.startswith("ID: ")]
        if not any(word in message for word in PURCHASE_WORDS):
            return "NENHUM"
        for line in lines:
            pid, rest = line[len("ID: "):].split(" - ", 1)
            if any(word in rest.lower() and word in message for word in KEYWORD_VECTORS):
                return pid
        return lines[0][len("ID: "):].split(" - ", 1)[0] if lines else "NENHUM"
