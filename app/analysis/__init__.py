"""Response analysis for AI provider answers.

Turns one raw answer into structured signals about a brand:
  1. Mention detection (plain case-insensitive substring)
  2. Structural & ranking parser (position in an enumerated answer)
  3. Sentiment from a fixed lexicon around the first mention
  4. Citation extraction (text URLs + provider citation metadata)
  5. Confidence scoring

Input:  raw answer text, brand name, competitor names, provider citations
Output: AnalyzedResult
"""
