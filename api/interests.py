from fastapi import APIRouter

from dependencies import PreferenceStoreDep, UserRepositoryDep, UserSessionDep
from common.exceptions import SelectionLimitExceededException
from common.responses import create_success_response
from services.interests_flow import InterestsFlow
from services.schemas import FlowOutcomeResponse, InterestsUpdateRequest
from services.submission_flow import raise_for_result

router = APIRouter(tags=["Interests"])


@router.put("/users/me/interests",
    summary="Save chat interests",
    description="Replace the caller's chat interests; at most the configured number may be selected",
)
async def update_interests(
    body: InterestsUpdateRequest,
    session: UserSessionDep,
    user_repository: UserRepositoryDep,
    preferences: PreferenceStoreDep,
):
    requested = list(dict.fromkeys(body.interest_tags))

    async with InterestsFlow(session, user_repository, preferences) as flow:
        flow.load()
        selection = flow.set_selection(requested)
        if len(selection) < len(requested):
            raise SelectionLimitExceededException(item=requested[len(selection)], limit=flow.max_interests)

        result = await flow.save()
        banner = flow.flow.banner
        dismiss_delay = flow.flow.dismiss_delay

    raise_for_result(result, "interests", banner)
    outcome = FlowOutcomeResponse.from_result(
        result,
        banner,
        dismiss_after_seconds=dismiss_delay,
        interest_tags=selection,
    )
    return create_success_response(outcome.model_dump())
