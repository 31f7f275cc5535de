"""
RAG (Retrieval Augmented Generation) module for the support bot.

Grounds LLM replies in a small question/answer knowledge base loaded from
CSV at startup, and keeps a zero-dependency keyword matcher as the last
line of defense when the OpenAI backends are unavailable.

Components:
    - knowledge_base: Loads the question/answer CSV into KnowledgeRecords
    - embedder: Generates embeddings via the OpenAI embeddings API
    - vector_index: In-memory cosine-similarity index over KB embeddings
    - keyword_matcher: Token-overlap fallback scorer
    - retriever: Renders the top-K matches into a context block
"""
