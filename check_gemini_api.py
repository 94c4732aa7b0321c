import asyncio

import config
from oracle import GeminiAnalyzer, OracleError
from schemas import UserInput
from segmenter import segment

SAMPLE_INPUT = UserInput(full_name="Nguyen Van A", birth_date="1990-05-01", intention="Where should I put my energy this year?")


async def check_gemini_connection():
    if not config.GOOGLE_API_KEY:
        print("Error: GOOGLE_API_KEY environment variable is not set.")
        print("Please set it before running this script (e.g., export GOOGLE_API_KEY='YOUR_KEY_HERE')")
        return

    print(f"Attempting an analysis with {config.GEMINI_MODEL}...")

    try:
        result = await GeminiAnalyzer().analyze(SAMPLE_INPUT)
    except OracleError as e:
        print("\n--- Gemini Analysis FAILED ---")
        print(f"An error occurred: {e}")
        print("Please ensure:")
        print("1. Your GOOGLE_API_KEY is correct and active.")
        print("2. The Generative Language API is enabled in your Google Cloud Project.")
        print(f"3. Your API Key has permissions to use the {config.GEMINI_MODEL} model.")
        print("------------------------------")
        return

    print("\n--- Gemini Analysis Successful ---")
    print(f"{result.introduction} ({result.main_color_hex})")
    print(f"Indicators: {len(result.indicators)}")
    for seg in segment(result.full_reading):
        print(f"[{seg.kind.value}] {seg.text[:80]}")
    print(result.blessing)
    print("----------------------------------")

if __name__ == "__main__":
    asyncio.run(check_gemini_connection())
