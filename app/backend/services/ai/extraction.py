"""
Model invocation for document extraction.

Sends page images to OpenAI and returns the raw text answer. Rate-limited
calls are retried with exponential backoff and jitter; parsing the answer is
left to the record pipeline.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .exceptions import AIServiceError, RateLimitExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Extraction Prompt
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """Você é um assistente especialista em extração de dados estruturados.
Analise o documento anexado (PDF ou imagem) e extraia TODAS as informações relevantes.

## Formato da Resposta

1. Responda com uma tabela em texto delimitado por ponto e vírgula (;).
2. A primeira linha é o cabeçalho; cada linha seguinte é um registro.
3. Se o documento tiver lançamentos recorrentes (dias, itens, parcelas), gere UMA linha por lançamento.
4. Campos repetidos na mesma linha devem ser numerados: Entrada_1;Saida_1;Entrada_2;Saida_2.
5. Se houver um colaborador, use a coluna Nome e repita o nome em todas as linhas.
6. Para folhas de ponto, inclua as colunas Total_Horas_Trabalhadas e Total_Horas_Extras em horas decimais.
7. Use N/A para valores ausentes. NÃO INVENTE VALORES.

Depois da tabela, em uma linha separada, inclua um objeto JSON com um resumo:
{"resumo_executivo_mensal": "resumo em uma ou duas frases"}

Não inclua explicações fora da tabela e do objeto JSON."""

EXTRACTION_USER_PROMPT = "Extraia os dados deste documento no formato solicitado."

MOCK_RESPONSE = """Nome;Data;Entrada_1;Saida_1;Total_Horas_Trabalhadas;Total_Horas_Extras
MOCK Colaborador;01/01/2024;08:00;17:00;8,0;0
N/A;02/01/2024;08:00;18:00;9,0;1,0
{"resumo_executivo_mensal": "DEVELOPMENT MODE: mock data. Set OPENAI_API_KEY for real extraction."}"""


# =============================================================================
# Rate-Limit Retry
# =============================================================================


def is_rate_limit_error(error: Exception) -> bool:
    """Whether an exception is the API telling us to slow down."""
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if status == 429:
        return True
    message = str(error).lower()
    return "resource has been exhausted" in message or "rate limit" in message


def backoff_delay(attempt: int, base_delay: float, max_jitter: float = 2.0) -> float:
    """Seconds to wait before retry number ``attempt`` (0-based)."""
    return base_delay * (2 ** attempt) + random.uniform(0, max_jitter)


async def call_with_retry(
    api_call: Callable[[], T],
    max_retries: int = 5,
    base_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``api_call``, retrying on rate-limit errors.

    Any other error is raised immediately.

    Raises:
        RateLimitExceededError: If the last attempt is still rate-limited.
    """
    for attempt in range(max_retries):
        try:
            return api_call()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise
            if attempt == max_retries - 1:
                raise RateLimitExceededError(
                    f"Rate limit exceeded (429) after {max_retries} attempts. Try again later."
                ) from e
            wait_time = backoff_delay(attempt, base_delay)
            logger.warning(
                "[429] Retrying in %.2fs (attempt %d/%d)",
                wait_time,
                attempt + 1,
                max_retries,
            )
            await sleep(wait_time)

    raise RateLimitExceededError("No attempts were made (max_retries < 1)")


# =============================================================================
# Main Request
# =============================================================================


def build_messages(base64_images: list[str]) -> list[dict[str, Any]]:
    """Chat messages carrying the prompt and every page image."""
    content: list[dict[str, Any]] = [{"type": "text", "text": EXTRACTION_USER_PROMPT}]
    for base64_img in base64_images:
        content.append({
            "type": "image_url",
            "image_url": {
                "url": f"data:image/png;base64,{base64_img}",
                "detail": "high",
            },
        })
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": content},
    ]


async def request_extraction(
    base64_images: list[str],
    source_file: str,
    client: Any,  # OpenAI client
    model: str = "gpt-4.1",
    max_retries: int = 5,
    base_delay: float = 2.0,
) -> str:
    """
    Ask the model to extract a document and return its raw answer.

    An empty answer is returned as an empty string; the parser reports it as
    a failed document.

    Raises:
        RateLimitExceededError: If every attempt was rate-limited.
        AIServiceError: On any other API failure.
    """
    if not base64_images:
        raise AIServiceError(f"No pages to extract for '{source_file}'")

    messages = build_messages(base64_images)

    def api_call() -> Any:
        return client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.1,
        )

    logger.info(
        "Extracting '%s' (%d page(s)) with model %s",
        source_file,
        len(base64_images),
        model,
    )

    try:
        response = await call_with_retry(api_call, max_retries=max_retries, base_delay=base_delay)
    except AIServiceError:
        raise
    except Exception as e:
        logger.exception("Data extraction failed for '%s'", source_file)
        raise AIServiceError(f"Data extraction failed: {e}") from e

    content = response.choices[0].message.content if response.choices else None
    if not content:
        logger.warning("Empty response from OpenAI for '%s'", source_file)
        return ""
    return content
