import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from extensions import db
from models import Task, TaskHistory
from ledger.config import LedgerConfig
from ledger.exceptions import LedgerError
from ledger.tasks import TaskEarningManager

logger = logging.getLogger(__name__)

bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@bp.route("", methods=["GET"])
@login_required
def list_tasks():
    """Active tasks, each flagged with whether it was completed today (UTC)."""
    try:
        tasks = Task.query.filter_by(is_active=True).order_by(Task.reward.desc(), Task.id).all()
        completed_ids = TaskEarningManager.completed_task_ids(current_user.id)

        tasks_with_status = []
        for task in tasks:
            item = task.to_dict()
            item["completed"] = task.id in completed_ids
            tasks_with_status.append(item)

        return jsonify({
            "tasks": tasks_with_status,
            "dailyLimit": float(TaskEarningManager.daily_limit(current_user.id)),
            "todayEarnings": float(TaskEarningManager.today_earnings(current_user.id)),
        }), 200

    except Exception as e:
        logger.error(f"Get tasks error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get tasks"}), 500


@bp.route("/complete", methods=["POST"])
@login_required
def complete_task():
    """
    Complete a task: credit the (possibly capped) reward, then pay the
    three-level referral commissions.
    """
    try:
        data = request.get_json(silent=True) or {}
        task = db.session.get(Task, data.get("taskId")) if data.get("taskId") else None

        if not task or not task.is_active:
            return jsonify({"error": "Task not found"}), 404

        result = TaskEarningManager.complete_task(current_user, task)
        db.session.commit()

        logger.info(f"User {current_user.id} completed task {task.id}, earned {result['earned']}")

        return jsonify({
            "message": "Task completed!",
            "earned": float(result["earned"]),
            "dailyLimit": float(result["daily_limit"]),
            "todayEarnings": float(result["today_earnings"]),
            "remainingToday": float(result["remaining_today"]),
        }), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Complete task error: {e}", exc_info=True)
        return jsonify({"error": "Failed to complete task"}), 500


@bp.route("/history", methods=["GET"])
@login_required
def task_history():
    try:
        history = (
            TaskHistory.query
            .filter_by(user_id=current_user.id)
            .order_by(TaskHistory.completed_at.desc(), TaskHistory.id.desc())
            .limit(LedgerConfig.HISTORY_LIMIT)
            .all()
        )
        return jsonify({"history": [h.to_dict() for h in history]}), 200

    except Exception as e:
        logger.error(f"Get history error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get history"}), 500
