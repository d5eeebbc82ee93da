# src/lecture_rag/observability/names.py

"""Metric names emitted by lecture-rag.

Durations are milliseconds. Counters are monotonic.
"""

# ============================================================================
# LLM
# ============================================================================

LLM_COMPLETION_DURATION = "llm_completion_duration"
LLM_REQUESTS_TOTAL = "llm_requests_total"
LLM_TOKENS_PROMPT = "llm_tokens_prompt"
LLM_TOKENS_COMPLETION = "llm_tokens_completion"
LLM_TOKENS_TOTAL = "llm_tokens_total"


# ============================================================================
# Embeddings
# ============================================================================

EMBEDDINGS_DURATION = "embeddings_duration"
EMBEDDINGS_REQUESTS_TOTAL = "embeddings_requests_total"
EMBEDDINGS_BATCH_SIZE = "embeddings_batch_size"


# ============================================================================
# Vector stores (label: backend=sqlite|pgvector)
# ============================================================================

VECTORSTORE_UPSERT_DURATION = "vectorstore_upsert_duration"
VECTORSTORE_QUERY_DURATION = "vectorstore_query_duration"
VECTORSTORE_DELETE_DURATION = "vectorstore_delete_duration"
VECTORSTORE_OPERATIONS_TOTAL = "vectorstore_operations_total"


# ============================================================================
# Chunking
# ============================================================================

CHUNKING_DURATION = "chunking_duration"
CHUNKING_CHUNKS_CREATED = "chunking_chunks_created"


# ============================================================================
# Theme extraction and aggregation
# ============================================================================

EXTRACTION_DURATION = "theme_extraction_duration"
EXTRACTION_THEMES_TOTAL = "theme_extraction_themes_total"
EXTRACTION_PARSE_FAILURES_TOTAL = "theme_extraction_parse_failures_total"
AGGREGATION_THEMES_DROPPED = "theme_aggregation_themes_dropped"


# ============================================================================
# Study notes
# ============================================================================

NOTES_DURATION = "notes_generation_duration"


# ============================================================================
# Topic mapping
# ============================================================================

TOPIC_CATALOG_REBUILDS_TOTAL = "topic_catalog_rebuilds_total"
TOPIC_CATALOG_SIZE = "topic_catalog_size"
TOPIC_MAPPING_MAPPED_TOTAL = "topic_mapping_mapped_total"
TOPIC_MAPPING_UNMAPPED_TOTAL = "topic_mapping_unmapped_total"


# ============================================================================
# Retrieval
# ============================================================================

RETRIEVAL_SEARCH_DURATION = "retrieval_search_duration"
RETRIEVAL_RESULTS_TOTAL = "retrieval_results_total"
RETRIEVAL_INDEXED_TOTAL = "retrieval_indexed_total"


# ============================================================================
# Pipeline, jobs and ingestion
# ============================================================================

PIPELINE_DURATION = "pipeline_duration"
PIPELINE_FAILURES_TOTAL = "pipeline_failures_total"
INGESTION_ROWS_TOTAL = "ingestion_rows_total"
