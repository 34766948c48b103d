"""Chat orchestrator.

A user message becomes a reply in four sequential steps:

1. rewrite the message with the conversation context,
2. retrieve similar active products from the vector index,
3. let the model pick at most one of them,
4. write the reply, about the picked product or a general one.

Every step has a fallback, so an upstream failure degrades the answer but
never reaches the caller.
"""
from typing import List, Optional, Sequence

from .config import Config
from .generate import GenerationClient
from .postprocess import format_price, format_response, make_slug
from .prompt_builder import NO_PRODUCT, PromptBuilder
from .retrieval import ProductRetriever
from ..data.models import Product
from ..schemas.io_models import ChatMessage, ChatResult, ProductInfo
from ..utils.logger import get_logger
from ..utils.security import preview

logger = get_logger()

APOLOGY_MESSAGE = "Desculpe, tive um probleminha técnico aqui! 😅 Pode tentar novamente? Estou aqui para te ajudar!"
GREETING_MESSAGE = "Olá! Sou o GelinhIA, seu assistente virtual da GelaBoca! 😊 Como posso te ajudar hoje?"


def product_reply_when_empty(product: Product) -> str:
    return (f"Ah, o {product.name} é uma delícia! 😋 Custa {format_price(product.price)}. "
            "Posso te ajudar com mais alguma coisa?")


def product_reply_on_error(product: Product) -> str:
    return (f"Que legal! O {product.name} é uma excelente opção! 😊 Custa {format_price(product.price)}. "
            "Posso te ajudar com mais alguma coisa?")


def match_candidate(answer: str, candidates: Sequence[Product]) -> Optional[Product]:
    """Exact id match first, then a candidate whose id starts with the answer."""
    selected_id = (answer or "").strip().strip("\"'`").strip()
    if not selected_id or selected_id == NO_PRODUCT:
        return None
    for product in candidates:
        if product.id == selected_id:
            return product
    # the model sometimes cuts long ids short
    for product in candidates:
        if product.id.startswith(selected_id):
            return product
    return None


class ChatController:
    def __init__(self, gen_client: GenerationClient, retriever: ProductRetriever,
                 builder: Optional[PromptBuilder] = None,
                 select_fallback_first: Optional[bool] = None):
        self.gen_client = gen_client
        self.retriever = retriever
        self.builder = builder or PromptBuilder()
        if select_fallback_first is None:
            select_fallback_first = Config.SELECT_FALLBACK_FIRST
        self.select_fallback_first = select_fallback_first

    def adjust_message(self, message: str, history: Sequence[ChatMessage]) -> str:
        """Step 1. Falls back to the original message."""
        try:
            adjusted = self.gen_client.complete(
                self.builder.build_rewrite(message, history), max_tokens=200, temperature=0.3
            )
            return adjusted or message
        except Exception as e:
            logger.error("Message rewrite failed: %s", e)
            return message

    def find_products(self, adjusted_message: str) -> List[Product]:
        """Step 2."""
        return self.retriever.find_similar(adjusted_message)

    def select_product(self, message: str, history: Sequence[ChatMessage],
                       candidates: Sequence[Product]) -> Optional[Product]:
        """
        Step 3. Pick at most one candidate.

        Any sign of interest in a product, flavor or purchase yields a pick;
        only questions unrelated to products (hours, location, payment...)
        yield none. When the call fails the first candidate is picked unless
        the controller was built with ``select_fallback_first=False``.
        """
        if not candidates:
            return None
        try:
            answer = self.gen_client.complete(
                self.builder.build_selection(message, history, candidates),
                max_tokens=50, temperature=0.1,
            )
        except Exception as e:
            logger.error("Product selection failed: %s", e)
            return candidates[0] if self.select_fallback_first else None

        logger.info("[WORKFLOW] 3a. Model selection answer: %s", answer)
        selected = match_candidate(answer, candidates)
        if selected is None and answer and answer.strip() != NO_PRODUCT:
            logger.warning("Selection %r matched no candidate", answer)
        return selected

    def generate_product_response(self, message: str, history: Sequence[ChatMessage],
                                  product: Product) -> str:
        """Step 4, with a product."""
        try:
            reply = self.gen_client.complete(
                self.builder.build_product_reply(message, history, product),
                max_tokens=150, temperature=0.7,
            )
            return format_response(reply) or product_reply_when_empty(product)
        except Exception as e:
            logger.error("Product reply failed: %s", e)
            return product_reply_on_error(product)

    def generate_general_response(self, message: str) -> str:
        """Step 4, without a product."""
        try:
            reply = self.gen_client.complete(
                self.builder.build_general_reply(message), max_tokens=200, temperature=0.7
            )
            return format_response(reply) or GREETING_MESSAGE
        except Exception as e:
            logger.error("General reply failed: %s", e)
            return GREETING_MESSAGE

    def process_chat_message(self, message: str, history: Sequence[ChatMessage]) -> ChatResult:
        """
        Run the whole pipeline.

        Args:
            message: Raw user text
            history: Conversation so far, including ``message`` as last entry

        Returns:
            The reply, with a product reference only when a product was picked.
            Never raises.
        """
        try:
            logger.info("[WORKFLOW] Processing message: %s", preview(message))

            logger.info("[WORKFLOW] 1. Adjusting message...")
            adjusted = self.adjust_message(message, history)
            logger.info("[WORKFLOW] 1a. Adjusted message: %s", preview(adjusted))

            logger.info("[WORKFLOW] 2. Searching similar products...")
            candidates = self.find_products(adjusted)

            logger.info("[WORKFLOW] 3. Selecting product among %d candidates...", len(candidates))
            selected = self.select_product(message, history, candidates)
            logger.info("[WORKFLOW] 3b. Selected: %s", selected.name if selected else NO_PRODUCT)

            logger.info("[WORKFLOW] 4. Generating reply...")
            if selected is None:
                return ChatResult(message=self.generate_general_response(message))

            reply = self.generate_product_response(message, history, selected)
            return ChatResult(
                message=reply,
                product_info=ProductInfo(name=selected.name, slug=make_slug(selected.name)),
            )
        except Exception as e:
            logger.exception("Chat pipeline failed: %s", e)
            return ChatResult(message=APOLOGY_MESSAGE)
