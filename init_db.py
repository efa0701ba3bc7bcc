"""Print the Supabase schema for the progress tables."""
import os
import re
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")

# SQL schema
SCHEMA_SQL = """
-- One row per user, premium unlocks unlimited questions and simulations
CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY REFERENCES auth.users(id) ON DELETE CASCADE,
    is_premium BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Latest answer per (user, question identity); written with upsert
CREATE TABLE IF NOT EXISTS question_answers (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    question_id TEXT NOT NULL,
    question_data JSONB NOT NULL,
    user_answer VARCHAR(1) NOT NULL,
    is_correct BOOLEAN NOT NULL,
    subject TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(user_id, question_id)
);

-- Completed mock exams (insert only)
CREATE TABLE IF NOT EXISTS simulations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    score NUMERIC(5,2) NOT NULL,
    passed BOOLEAN NOT NULL,
    time_spent INT NOT NULL,
    score_by_subject JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Create indexes for performance
CREATE INDEX IF NOT EXISTS idx_question_answers_user_id ON question_answers(user_id);
CREATE INDEX IF NOT EXISTS idx_simulations_user_created ON simulations(user_id, created_at);
"""


def statements() -> list[str]:
    # Statements end with ";" at end of line; a ";" inside a comment does not split.
    return [s.strip() for s in re.split(r";[ \t]*$", SCHEMA_SQL, flags=re.MULTILINE) if s.strip()]


if __name__ == "__main__":
    print("Supabase schema for the simulado progress tables")
    print(f"URL: {SUPABASE_URL or '(SUPABASE_URL not set)'}")
    print(f"{len(statements())} statements. Run this SQL in the Supabase SQL Editor:")
    print(SCHEMA_SQL)
