from fastapi import Request
from core.config import Settings
from services.draw_service import DrawSession
from services.host_service import HostList
from services.participant_import import ParticipantRoster
from services.profile_service import ProfileService


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def get_draw_session(request: Request) -> DrawSession:
    return request.app.state.draw_session


def get_host_list(request: Request) -> HostList:
    return request.app.state.host_list


def get_roster(request: Request) -> ParticipantRoster:
    return request.app.state.roster
