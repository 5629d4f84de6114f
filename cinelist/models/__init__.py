from cinelist.models.user import User
from cinelist.models.movie_list import MovieList
from cinelist.models.list_member import ListMember, ListRole
from cinelist.models.movie import Genre, Movie
from cinelist.models.list_movie import ListMovie, MovieStatus
from cinelist.models.list_movie_user_data import ListMovieUserData
from cinelist.models.comment import Comment

__all__ = [
    "User",
    "MovieList",
    "ListMember",
    "ListRole",
    "Genre",
    "Movie",
    "ListMovie",
    "MovieStatus",
    "ListMovieUserData",
    "Comment",
]
