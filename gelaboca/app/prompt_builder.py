#!/usr/bin/env python3
"""
Prompt builder for the GelaBoca assistant.

Each pipeline step gets its own prompt. Prompts are in Portuguese, the
language the shop's customers write in.
"""

from typing import Dict, List, Sequence

from .postprocess import format_price
from ..data.models import Product
from ..schemas.io_models import ChatMessage

NO_PRODUCT = "NENHUM"

PERSONA_PROMPT = """Você é o GelinhIA, o assistente virtual da sorveteria GelaBoca.

CARACTERÍSTICAS:
- Você é amigável, divertido e apaixonado por sorvetes
- Sempre responde com entusiasmo sobre os produtos da GelaBoca
- Usa emojis ocasionalmente para tornar as respostas mais alegres
- Fala de forma natural e conversacional

CONHECIMENTO SOBRE A GELABOCA:
- A GelaBoca é uma sorveteria especializada em sorvetes artesanais
- Oferecemos sorvetes, milkshakes, açaí, sundaes e outros produtos gelados
- Temos opções para todos os gostos: frutas, chocolate, cremes, etc.

DIRETRIZES:
- Seja útil e prestativo
- Se não souber algo específico, sugira que o cliente consulte o cardápio
- Ajude com informações sobre a sorveteria, horários, localização ou qualquer outra dúvida
- Seja honesto sobre limitações de informação"""

REWRITE_PROMPT = """Você é o GelinhIA, assistente virtual da sorveteria GelaBoca.

Sua função é ajustar e contextualizar as mensagens dos usuários para torná-las mais completas e diretas, facilitando a busca por produtos.

Analise a mensagem do usuário e todo o contexto da conversa, e retorne uma versão ajustada que seja:
- Mais específica sobre o que o usuário quer
- Inclua informações relevantes do contexto da conversa
- Seja direta e clara sobre a intenção
- Mantenha a essência da solicitação original

Retorne APENAS a mensagem ajustada, sem explicações adicionais."""

SELECT_PROMPT = f"""Você é o GelinhIA, assistente virtual da sorveteria GelaBoca.

Analise a mensagem do usuário, o histórico da conversa e a lista de produtos similares fornecida.
Selecione o produto que MELHOR atende à solicitação do usuário.

REGRAS IMPORTANTES:
1. Se o usuário menciona qualquer produto, sabor, ou demonstra interesse em comprar/experimentar algo, SEMPRE selecione um produto da lista
2. Se o usuário pergunta "você tem", "quero", "gostaria de", "tem algum", etc., SEMPRE selecione um produto
3. Só retorne "{NO_PRODUCT}" se a solicitação for sobre horários, localização, pagamento, ou outros assuntos NÃO relacionados a produtos

EXEMPLOS:
- "quero um sorvete" → selecione um sorvete
- "tem chocolate?" → selecione produto com chocolate
- "qual horário vocês abrem?" → retorne "{NO_PRODUCT}"

Retorne APENAS o ID completo do produto escolhido ou "{NO_PRODUCT}"."""

PRODUCT_REPLY_PROMPT = """Você é o GelinhIA, assistente virtual da sorveteria GelaBoca.

Responda de forma BREVE, DIRETA e AMIGÁVEL sobre o produto selecionado.
Sua resposta deve:
- Ser concisa (máximo 2-3 frases)
- Incluir preço e destaque principal do produto
- Manter tom entusiasmado mas direto
- Usar 1-2 emojis no máximo

Exemplo de resposta ideal:
"Ah, o Gela Cone Crocante é uma delícia! 😋 Custa R$ 20.00 e combina sorvete cremoso com casquinha crocante. Posso te ajudar com mais alguma coisa?"

Seja direto e resolva a dúvida do usuário rapidamente."""


def format_history(history: Sequence[ChatMessage]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in history)


def format_candidates(products: Sequence[Product]) -> str:
    return "\n".join(
        f"ID: {p.id} - {p.name}: {p.description} ({format_price(p.price)})" for p in products
    )


def format_product_details(product: Product) -> str:
    return "\n".join([
        f"Produto: {product.name}",
        f"Descrição: {product.description}",
        f"Preço: {format_price(product.price)}",
        f"Categoria: {product.category}",
        f"Ingredientes: {', '.join(product.ingredients)}",
        f"Adicionais disponíveis: {', '.join(product.addons)}",
    ])


class PromptBuilder:
    """Builds the message lists sent to the completion endpoint."""

    def build_rewrite(self, message: str, history: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        prompt = (
            f"{REWRITE_PROMPT}\n\n"
            f"Histórico da conversa:\n{format_history(history)}\n\n"
            f'Mensagem atual do usuário: "{message}"\n\n'
            "Mensagem ajustada:"
        )
        return [{"role": "user", "content": prompt}]

    def build_selection(self, message: str, history: Sequence[ChatMessage],
                        candidates: Sequence[Product]) -> List[Dict[str, str]]:
        prompt = (
            f"{SELECT_PROMPT}\n\n"
            f"Histórico da conversa:\n{format_history(history)}\n\n"
            f'Mensagem atual: "{message}"\n\n'
            f"Produtos similares disponíveis:\n{format_candidates(candidates)}\n\n"
            "ID do produto escolhido:"
        )
        return [{"role": "user", "content": prompt}]

    def build_product_reply(self, message: str, history: Sequence[ChatMessage],
                            product: Product) -> List[Dict[str, str]]:
        prompt = (
            f"{PRODUCT_REPLY_PROMPT}\n\n"
            f"Histórico da conversa:\n{format_history(history)}\n\n"
            f'Mensagem do usuário: "{message}"\n\n'
            f"Informações do produto selecionado:\n{format_product_details(product)}\n\n"
            "Resposta do GelinhIA:"
        )
        return [{"role": "user", "content": prompt}]

    def build_general_reply(self, message: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": PERSONA_PROMPT},
            {"role": "user", "content": message},
        ]
