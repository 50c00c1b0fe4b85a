# Services package.
#
# Each module exposes async functions holding the business rules and
# database access for one part of the blog:
#
#   article_service   — the article catalog: listings, search, neighbours,
#                       related articles, tags/category links, moderation,
#                       view counter, deletion
#   taxonomy_service  — Category and Tag lookups
#   comment_service   — comments and their moderation
#   user_service      — authors
#
# All service functions take an AsyncSession as their first argument and
# only flush; the router layer owns the transaction through ``get_db``.
