from .client import FollowHandle, K8sLogClient, label_selector

__all__ = ['FollowHandle', 'K8sLogClient', 'label_selector']
