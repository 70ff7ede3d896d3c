"""UI component tree."""

from nuuslees.components.article_view import ArticleList, ArticleReader, ArticleView
from nuuslees.components.base import ActionSink, Component, ListState, Placement, TabComponent
from nuuslees.components.feed_view import FeedView
from nuuslees.components.group_view import GroupView
from nuuslees.components.info_bar import InfoBar
from nuuslees.components.popups import HelpPopup, QuitPopup
from nuuslees.components.tab_bar import TabBar
from nuuslees.components.tab_viewer import TabViewer

__all__ = [
    "ActionSink",
    "ArticleList",
    "ArticleReader",
    "ArticleView",
    "Component",
    "FeedView",
    "GroupView",
    "HelpPopup",
    "InfoBar",
    "ListState",
    "Placement",
    "QuitPopup",
    "TabBar",
    "TabComponent",
    "TabViewer",
]
