"""
LLM query expansion using Google GenAI SDK (Gemini).

A tradesperson's question ("how far does a power point need to be from the
shower?") rarely shares words with the TOC heading that answers it. Gemini
rewrites the question into several search queries using regulation
terminology; each query is then ranked against the TOC and the rankings are
merged.

Any failure (API error, non-JSON reply, wrong shape) falls back to the
original question, so search still works without the LLM.
"""

import json
import logging
from typing import List, Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class QueryExpander:
    """Generates alternative search queries for a question"""

    EXPANSION_PROMPT_TEMPLATE = """You are a search query expert for building regulations and standards documents.

User's question: "{question}"
Document: {document_title}

Your task: Generate {count} different search queries that would help find the answer to this question in the table of contents. Think about:
- Different ways to phrase the concept
- Technical terms and regulations terminology
- Related topics and sections
- Both specific and general approaches

Return ONLY a JSON array of {count} search query strings, nothing else. Example format:
["query 1", "query 2", "query 3"]"""

    def __init__(
        self,
        genai_client: Optional[genai.Client],
        model_name: str = "gemini-2.5-flash",
        query_count: int = 5,
        temperature: float = 0.7,
    ):
        """
        Initialize query expander.

        Args:
            genai_client: Google Gen AI client (None = expansion disabled)
            model_name: Gemini model to use
            query_count: Number of queries to request
            temperature: Higher = more diverse phrasings
        """
        self.genai_client = genai_client
        self.model_name = model_name
        self.query_count = query_count
        self.temperature = temperature

    def expand(self, question: str, document_title: str = "") -> List[str]:
        """
        Expand a question into search queries.

        Args:
            question: User question
            document_title: Title of the document being searched

        Returns:
            Non-empty list of queries (at most query_count);
            [question] when expansion is unavailable or fails
        """
        if self.genai_client is None:
            return [question]

        prompt = self.EXPANSION_PROMPT_TEMPLATE.format(
            question=question,
            document_title=document_title or "Unknown document",
            count=self.query_count,
        )

        try:
            response = self.genai_client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=500,
                    response_mime_type="application/json",
                ),
            )
            result_text = response.text.strip()
            logger.debug(f"Gemini expansion raw response: {result_text[:300]}")
            queries = json.loads(result_text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse search queries, using original: {e}")
            return [question]
        except Exception as e:
            logger.error(f"Query expansion failed, using original: {e}")
            return [question]

        if not isinstance(queries, list):
            logger.error(f"Expected JSON array of queries, got: {type(queries).__name__}")
            return [question]

        cleaned = [q.strip() for q in queries if isinstance(q, str) and q.strip()]
        if not cleaned:
            logger.warning("Gemini returned no usable queries, using original")
            return [question]

        logger.info(f"Generated {len(cleaned[:self.query_count])} search queries")
        return cleaned[:self.query_count]
