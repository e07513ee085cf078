"""Run options chosen by the operator before migration starts.

The Clubhouse side needs a project, a workflow state, a story type and a
fallback member; the Trello side needs the lists to export. Everything here
is collected once, interactively, and then stays fixed for the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from trello2clubhouse.clubhouse_client import ClubhouseClient
from trello2clubhouse.exceptions import ConfigurationError
from trello2clubhouse.trello_client import TrelloReader

logger = logging.getLogger(__name__)

STORY_TYPES = ["feature", "chore", "bug"]
YES_NO = ["Yes", "No"]

InputFn = Callable[[str], str]


@dataclass(frozen=True)
class ClubhouseOptions:
    project_id: int
    workflow_state_id: int
    story_type: str
    fallback_member_id: str
    add_comment_with_trello_link: bool = False


@dataclass(frozen=True)
class TrelloOptions:
    list_ids: list[str] | None = None  # None: every list on the board
    exported_label: str | None = None


def prompt_select(title: str, choices: list[str], input_fn: InputFn = input) -> int:
    """Print numbered choices and return the index the operator picked

    Raises:
        ConfigurationError: If the answer is not a number in range
    """
    if not choices:
        raise ConfigurationError(f"Nothing to choose from: {title}")

    print(title)
    for i, choice in enumerate(choices):
        print(f"[{i}] {choice}")

    answer = input_fn("> ").strip()
    try:
        index = int(answer)
    except ValueError as e:
        raise ConfigurationError(f"Expected a number, got: {answer!r}") from e

    if not 0 <= index < len(choices):
        raise ConfigurationError(f"Selection {index} out of range (0-{len(choices) - 1})")
    return index


def collect_clubhouse_options(
    client: ClubhouseClient, fast: bool = False, input_fn: InputFn = input
) -> ClubhouseOptions:
    """Ask for project, workflow state, fallback member, story type and link comment

    Only workflows belonging to the project's team are offered. With
    ``fast`` the link comment is added without asking.
    """
    projects = client.list_projects()
    project = projects[
        prompt_select(
            "Please select a project by its number to import the cards into",
            [p["name"] for p in projects],
            input_fn,
        )
    ]

    states: list[tuple[str, dict]] = []
    for workflow in client.list_workflows():
        if workflow.get("team_id") != project.get("team_id"):
            continue
        for state in workflow.get("states", []):
            states.append((f"{workflow['name']} - {state['name']}", state))

    state_index = prompt_select(
        f"Please select a workflow state linked to '{project['name']}' - "
        "to import the trello cards into",
        [label for label, _ in states],
        input_fn,
    )
    state = states[state_index][1]

    members = client.list_members()
    member = members[
        prompt_select(
            "Please select a backup user account if a user is not mapped correctly",
            [m.get("profile", {}).get("name", m["id"]) for m in members],
            input_fn,
        )
    ]

    story_type = STORY_TYPES[
        prompt_select(
            "Please select the story type all cards should be imported as", STORY_TYPES, input_fn
        )
    ]

    if fast:
        add_link = True
    else:
        add_link = (
            prompt_select(
                "Would you like a comment added with the original trello ticket link?",
                YES_NO,
                input_fn,
            )
            == 0
        )

    options = ClubhouseOptions(
        project_id=project["id"],
        workflow_state_id=state["id"],
        story_type=story_type,
        fallback_member_id=member["id"],
        add_comment_with_trello_link=add_link,
    )
    logger.debug("Clubhouse options: %s", options)
    return options


def collect_trello_options(
    trello: TrelloReader, exported_label: str | None = None, input_fn: InputFn = input
) -> TrelloOptions:
    """Ask which of the board's lists to export

    An empty answer selects every list; otherwise a comma separated list of
    indices is expected.
    """
    lists = trello.get_lists()
    if not lists:
        raise ConfigurationError("The Trello board has no lists")

    print("Please select the lists to export (comma separated numbers, empty for all)")
    for i, trello_list in enumerate(lists):
        print(f"[{i}] {trello_list['name']}")

    answer = input_fn("> ").strip()
    if not answer:
        return TrelloOptions(list_ids=None, exported_label=exported_label)

    list_ids = []
    for part in answer.split(","):
        try:
            index = int(part.strip())
        except ValueError as e:
            raise ConfigurationError(f"Expected a number, got: {part.strip()!r}") from e
        if not 0 <= index < len(lists):
            raise ConfigurationError(f"Selection {index} out of range (0-{len(lists) - 1})")
        list_ids.append(lists[index]["id"])

    return TrelloOptions(list_ids=list_ids, exported_label=exported_label)
