from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from .host.exceptions import GatewayError
from .host.manager import VPNHostManager
from .logging_utility import Logger, logger
from .schemas import (
    ExecuteCommand,
    FileCreate,
    FilePath,
    FileWrite,
    NewUser,
    PasswordUpdate,
    PortRuleAdd,
    RuleAdd,
    RuleRemove,
)
from .settings import GatewaySettings, load_settings


router = APIRouter()


def get_manager(request: Request) -> VPNHostManager:
    return request.app.state.manager


def _http_error(e: GatewayError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/users")
async def list_users(manager: VPNHostManager = Depends(get_manager)):
    """List users that have a credential bundle"""
    try:
        return [user.to_dict() for user in manager.users.list_users()]
    except GatewayError as e:
        logger.error(f"Error listing users: {str(e)}")
        raise _http_error(e)


@router.post("/users")
async def add_user(body: NewUser, manager: VPNHostManager = Depends(get_manager)):
    """Create a VPN user"""
    try:
        output = await manager.add_user(body.username, body.password)
        return {"message": "User created successfully", "output": output}
    except GatewayError as e:
        logger.error(f"Error adding user {body.username}: {str(e)}")
        raise _http_error(e)


@router.put("/users/{username}")
async def update_password(username: str, body: PasswordUpdate, manager: VPNHostManager = Depends(get_manager)):
    """Reset a user's password by provisioning it again"""
    try:
        output = await manager.add_user(username, body.password)
        return {"message": "Password updated successfully", "output": output}
    except GatewayError as e:
        logger.error(f"Error updating password for {username}: {str(e)}")
        raise _http_error(e)


@router.delete("/users/{username}")
async def delete_user(username: str, manager: VPNHostManager = Depends(get_manager)):
    """Delete a VPN user"""
    try:
        output = await manager.delete_user(username)
        return {"message": "User deleted successfully", "output": output}
    except GatewayError as e:
        logger.error(f"Error deleting user {username}: {str(e)}")
        raise _http_error(e)


@router.post("/ikev2/reload")
async def reload_ikev2(manager: VPNHostManager = Depends(get_manager)):
    """Regenerate IKEv2 client configuration"""
    try:
        output = await manager.reload_ikev2()
        return {"message": "IKEv2 config refreshed", "output": output}
    except GatewayError as e:
        logger.error(f"IKEv2 reload failed: {str(e)}")
        raise _http_error(e)


@router.get("/configs/{filename}")
async def download_config(filename: str, manager: VPNHostManager = Depends(get_manager)):
    """Download a .p12, .sswan or .mobileconfig credential file"""
    try:
        path = manager.users.artifact_path(filename)
    except GatewayError as e:
        logger.error(f"Download of {filename} failed: {str(e)}")
        raise _http_error(e)
    return FileResponse(path, filename=filename, media_type="application/octet-stream")


@router.get("/status")
async def get_status(manager: VPNHostManager = Depends(get_manager)):
    """Current service health"""
    status = await manager.get_status()
    return status.to_dict()


@router.post("/restart")
async def restart(manager: VPNHostManager = Depends(get_manager)):
    """Restart the VPN services"""
    try:
        output = await manager.restart_services()
        return {"message": "Services restarted successfully", "output": output}
    except GatewayError as e:
        logger.error(f"Error restarting services: {str(e)}")
        raise _http_error(e)


@router.post("/files/check")
async def check_file(body: FilePath, manager: VPNHostManager = Depends(get_manager)):
    """Whether a path exists; access faults are reported, not raised"""
    try:
        return {"exists": manager.files.exists(body.path), "path": body.path}
    except GatewayError as e:
        if e.status_code != 500:
            raise _http_error(e)
        logger.warning(f"Cannot check {body.path}: {str(e)}")
        return {"exists": False, "path": body.path, "error": str(e)}


@router.get("/files/known")
async def check_known_files(manager: VPNHostManager = Depends(get_manager)):
    """Existence report for the standard VPN configuration files and scripts"""
    return manager.files.check_known()


@router.post("/files/read")
async def read_file(body: FilePath, manager: VPNHostManager = Depends(get_manager)):
    """Content and metadata of an allowed file"""
    try:
        return manager.files.read(body.path).to_dict()
    except GatewayError as e:
        logger.error(f"Error reading {body.path}: {str(e)}")
        raise _http_error(e)


@router.post("/files/write")
async def write_file(body: FileWrite, manager: VPNHostManager = Depends(get_manager)):
    """Replace the content of an allowed file"""
    try:
        await manager.files.write(body.path, body.content)
        return {"success": True, "message": "File written successfully"}
    except GatewayError as e:
        logger.error(f"Error writing {body.path}: {str(e)}")
        raise _http_error(e)


@router.post("/files/create")
async def create_file(body: FileCreate, manager: VPNHostManager = Depends(get_manager)):
    """Create an allowed file, optionally refusing to overwrite"""
    try:
        await manager.files.create(body.path, body.content, exclusive=body.exclusive)
        return {"success": True, "message": "File created successfully"}
    except GatewayError as e:
        logger.error(f"Error creating {body.path}: {str(e)}")
        raise _http_error(e)


@router.post("/files/delete")
async def delete_file(body: FilePath, manager: VPNHostManager = Depends(get_manager)):
    """Remove an allowed file"""
    try:
        await manager.files.delete(body.path)
        return {"success": True, "message": "File deleted successfully"}
    except GatewayError as e:
        logger.error(f"Error deleting {body.path}: {str(e)}")
        raise _http_error(e)


@router.get("/iptables/list")
async def list_rules(manager: VPNHostManager = Depends(get_manager)):
    """Firewall rules; ids are only valid for this listing"""
    try:
        return [rule.to_dict() for rule in await manager.firewall.list_rules()]
    except GatewayError as e:
        logger.error(f"Error listing firewall rules: {str(e)}")
        raise _http_error(e)


@router.post("/iptables/add")
async def add_rule(body: RuleAdd, manager: VPNHostManager = Depends(get_manager)):
    """Append a rule to a chain"""
    try:
        await manager.firewall.add_rule(body.chain, body.rule)
        return {"success": True, "message": "Rule added successfully"}
    except GatewayError as e:
        logger.error(f"Error adding rule to {body.chain}: {str(e)}")
        raise _http_error(e)


@router.post("/iptables/remove")
async def remove_rule(body: RuleRemove, manager: VPNHostManager = Depends(get_manager)):
    """Delete a rule by chain position, optionally checking its text first"""
    try:
        await manager.firewall.remove_rule(body.chain, body.rule_number, expected=body.expected)
        return {"success": True, "message": "Rule removed successfully"}
    except GatewayError as e:
        logger.error(f"Error removing rule {body.rule_number} from {body.chain}: {str(e)}")
        raise _http_error(e)


@router.get("/iptables/ports")
async def list_port_rules(manager: VPNHostManager = Depends(get_manager)):
    """Rules that match on a port"""
    try:
        return [rule.to_dict() for rule in await manager.firewall.list_port_rules()]
    except GatewayError as e:
        logger.error(f"Error listing port rules: {str(e)}")
        raise _http_error(e)


@router.post("/iptables/ports")
async def add_port_rule(body: PortRuleAdd, manager: VPNHostManager = Depends(get_manager)):
    """Open or block a port"""
    try:
        spec = await manager.firewall.add_port_rule(body.port, body.protocol, body.action)
        return {"success": True, "message": f"Rule added successfully: {spec}"}
    except GatewayError as e:
        logger.error(f"Error adding port rule for {body.port}: {str(e)}")
        raise _http_error(e)


@router.post("/execute")
async def execute(body: ExecuteCommand, manager: VPNHostManager = Depends(get_manager)):
    """Run an allow-listed maintenance command"""
    try:
        return await manager.execute(body.command)
    except GatewayError as e:
        logger.error(f"Error executing '{body.command}': {str(e)}")
        raise _http_error(e)


async def _validation_error(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"detail": details or "Invalid request"})


def create_app(settings: GatewaySettings = None, runner=None) -> FastAPI:
    settings = settings or load_settings()
    Logger().set_level(settings.log_level)

    application = FastAPI(title="VPN Admin Gateway")
    application.state.settings = settings
    application.state.manager = VPNHostManager(settings, runner=runner)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(RequestValidationError, _validation_error)
    application.include_router(router)
    return application


app = create_app()
