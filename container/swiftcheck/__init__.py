"""Browser regression harness for a Singlish to Sinhala Unicode transliteration page."""
