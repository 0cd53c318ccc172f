"""GraphQL documents sent to AniList."""

_MEDIA_LIST_FIELDS = """
    id
    title { romaji english native }
    coverImage { large extraLarge }
    description
    episodes
    status
    seasonYear
    format
    genres
    relations {
        edges {
            relationType
        }
    }
"""

POPULAR_QUERY = f"""
query ($page: Int, $perPage: Int) {{
    Page(page: $page, perPage: $perPage) {{
        pageInfo {{ hasNextPage }}
        media(type: ANIME, sort: POPULARITY_DESC) {{
            {_MEDIA_LIST_FIELDS}
        }}
    }}
}}
"""

SEARCH_QUERY = f"""
query ($page: Int, $perPage: Int, $search: String) {{
    Page(page: $page, perPage: $perPage) {{
        pageInfo {{ hasNextPage }}
        media(type: ANIME, search: $search) {{
            {_MEDIA_LIST_FIELDS}
        }}
    }}
}}
"""

DETAILS_QUERY = """
query ($id: Int) {
    Media(id: $id, type: ANIME) {
        id
        title { romaji english native }
        coverImage { extraLarge large }
        description
        episodes
        status
        seasonYear
        season
        format
        genres
        averageScore
        studios { nodes { name } }
        relations {
            edges {
                relationType
                node {
                    id
                    title { romaji english native }
                    coverImage { extraLarge large }
                    episodes
                    status
                    format
                }
            }
        }
    }
}
"""
