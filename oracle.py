import logging
from typing import Optional

from langchain_google_genai import ChatGoogleGenerativeAI
from langchain.prompts import ChatPromptTemplate
from langchain_core.messages import HumanMessage, SystemMessage
from langchain.output_parsers import PydanticOutputParser, OutputFixingParser

import config
from schemas import AnalysisResult, UserInput

logger = logging.getLogger(__name__)


class OracleError(RuntimeError):
    """Any failure of the analysis call, whatever its cause."""


ANALYSIS_SYSTEM_PROMPT = """You are the voice of Mind Color Map, a gentle guide who reads a person's energetic blueprint through Pythagorean numerology and color frequency.

## YOUR MISSION:
Create a deeply personal analysis that turns pressure into strength and brings the person's vibration back to understanding and love.

## OUTPUT STRUCTURE:
- **introduction**: one short poetic headline addressed to the person.
- **mainColorDescription**: one or two sentences about their dominant color energy.
- **mainColorHex**: that color as a 6-digit hex code (for example #7FA7C9).
- **indicators**: exactly {indicator_count} facets (Life Path, Expression, Soul Urge, Personality, Birth Day, Maturity, Personal Year, karmic lessons, pinnacles, challenges and similar). Each has a title, a short value and a one or two sentence description; add colorHex and number where meaningful.
- **fullReading**: the long reading. Separate every block with a blank line. Start each section heading block with "## ". Use **bold** sparingly for key terms. When the person shares an intention, answer it in its own section.
- **blessing**: one short closing blessing.

## WRITING GUIDELINES:
- Write everything in {language}.
- Use the exact spelling of the person's name.
- Be warm, specific and grounded; no AI disclaimers.

{parser_instructions}"""

ANALYSIS_HUMAN_PROMPT = """**MIND COLOR MAP REQUEST**
- Full name: {full_name}
- Birth date (YYYY-MM-DD): {birth_date}
- Intention: {intention}"""


class GeminiAnalyzer:
    """
    The oracle: asks Gemini for a structured analysis of one ``UserInput``.

    The LLM is created on first use so the app can start (and be tested)
    without a key.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 temperature: Optional[float] = None):
        self.api_key = api_key or config.GOOGLE_API_KEY
        self.model = model or config.GEMINI_MODEL
        self.temperature = config.GEMINI_TEMPERATURE if temperature is None else temperature
        self.llm = None

    def _initialize_llm(self) -> ChatGoogleGenerativeAI:
        if self.llm is not None:
            return self.llm

        if not self.api_key:
            logger.error("GOOGLE_API_KEY environment variable not set.")
            raise OracleError("GOOGLE_API_KEY is not set. Please set it to use the Generative AI models.")

        try:
            self.llm = ChatGoogleGenerativeAI(model=self.model, google_api_key=self.api_key, temperature=self.temperature)
            logger.info(f"LLM instance initialized ({self.model}).")
        except Exception as e:
            logger.error(f"Failed to initialize LLM instance: {e}")
            raise OracleError(f"Failed to initialize LLM: {e}") from e
        return self.llm

    def build_prompt(self, user_input: UserInput, parser_instructions: str) -> ChatPromptTemplate:
        return ChatPromptTemplate.from_messages([
            SystemMessage(content=ANALYSIS_SYSTEM_PROMPT.format(
                indicator_count=config.EXPECTED_INDICATOR_COUNT,
                language=config.READING_LANGUAGE,
                parser_instructions=parser_instructions,
            )),
            HumanMessage(content=ANALYSIS_HUMAN_PROMPT.format(
                full_name=user_input.full_name,
                birth_date=user_input.birth_date,
                intention=user_input.intention or "(none)",
            )),
        ])

    async def analyze(self, user_input: UserInput) -> AnalysisResult:
        llm = self._initialize_llm()

        pydantic_parser = PydanticOutputParser(pydantic_object=AnalysisResult)
        # Wraps the parser and asks the LLM once more to repair malformed JSON.
        output_fixing_parser = OutputFixingParser.from_llm(parser=pydantic_parser, llm=llm)

        prompt = self.build_prompt(user_input, output_fixing_parser.get_format_instructions())
        chain = prompt | llm | output_fixing_parser

        try:
            logger.info("Generating analysis with OutputFixingParser.")
            result = await chain.ainvoke({})
        except Exception as e:
            logger.error(f"LLM analysis generation failed even after attempting to fix: {e}", exc_info=True)
            raise OracleError(f"Failed to generate analysis: {e}") from e

        logger.info(f"Analysis generated with {len(result.indicators)} indicators.")
        return result
